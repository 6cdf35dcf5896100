from django.urls import reverse
from rest_framework import serializers

from .models import Job

# legacy format names accepted from older clients
FORMAT_ALIASES = {"mp3": Job.Format.AUDIO.value, "mp4": Job.Format.VIDEO.value}

# camelCase request keys mapped onto the serializer's fields
FIELD_ALIASES = {"sourceUrl": "url", "desiredFormat": "format"}


def _apply_aliases(data):
    if not hasattr(data, "get"):
        return data
    data = {k: v for k, v in data.items()}
    for alias, name in FIELD_ALIASES.items():
        if alias in data and name not in data:
            data[name] = data.pop(alias)
    return data


class InfoRequestSerializer(serializers.Serializer):
    url = serializers.CharField(trim_whitespace=True)

    def to_internal_value(self, data):
        return super().to_internal_value(_apply_aliases(data))


class DownloadRequestSerializer(InfoRequestSerializer):
    format = serializers.CharField(trim_whitespace=True)

    def validate_format(self, value):
        """Normalise to 'audio' / 'video'; the job store rejects anything else."""
        value = value.lower()
        return FORMAT_ALIASES.get(value, value)


class JobSerializer(serializers.ModelSerializer):
    format = serializers.CharField(source="desired_format")
    filename = serializers.CharField(read_only=True)
    downloadHandle = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            "id",
            "status",
            "format",
            "video_id",
            "filename",
            "error",            # error code only; diagnostics stay internal
            "downloadHandle",
            "created_at",
            "ready_at",
            "fetched_at",
            "expires_at",
        ]

    def get_downloadHandle(self, job):
        if job.status != Job.Status.READY:
            return None
        return reverse("file_download", args=[job.id])
