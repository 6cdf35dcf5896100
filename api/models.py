import uuid
from django.db import models

class Job(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING"
        RUNNING = "RUNNING"
        READY = "READY"
        FAILED = "FAILED"
        EXPIRED = "EXPIRED"

    class Format(models.TextChoices):
        AUDIO = "audio"
        VIDEO = "video"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source_url = models.CharField(max_length=512)
    video_id = models.CharField(max_length=64)
    desired_format = models.CharField(max_length=8, choices=Format.choices)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    output_path = models.CharField(max_length=1024, blank=True, default="")  # set only while READY
    error = models.CharField(max_length=32, blank=True, default="")          # error code on FAILED
    diagnostics = models.TextField(blank=True, default="")                   # decoder stdout/stderr, internal only

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    fetched_at = models.DateTimeField(null=True, blank=True)
    # not-before timestamp for deletion; the sweep expires READY jobs past it
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.id} [{self.status}]"

    @property
    def filename(self) -> str:
        if not self.output_path:
            return ""
        return self.output_path.replace("\\", "/").rsplit("/", 1)[-1]
