import logging
import os

from django.conf import settings
from django.http import StreamingHttpResponse
from django.urls import reverse
from django.utils import timezone
from django.utils.http import content_disposition_header
from rest_framework import views
from rest_framework.response import Response

from . import decoder, remote, store
from .errors import JobNotFound
from .models import Job
from .serializers import DownloadRequestSerializer, InfoRequestSerializer, JobSerializer
from .utils import canonical_url, safe_filename

logger = logging.getLogger(__name__)


class DownloadView(views.APIView):
    """
    Convert a YouTube URL to an audio or video file.

    With the decoder backend the request blocks until the decoder finishes and
    the response points at /file/<job id>. With the proxy backend the URL is
    resolved by the third-party API and its link is returned directly.
    """

    def post(self, request):
        ser = DownloadRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        url = ser.validated_data["url"]
        desired_format = ser.validated_data["format"]

        if settings.DOWNLOAD_BACKEND == "proxy":
            return self._proxy(url, desired_format)

        job = store.submit(url, desired_format)
        return Response({
            "success": True,
            "jobId": str(job.id),
            "downloadHandle": reverse("file_download", args=[job.id]),
            "filename": job.filename,
        })

    def _proxy(self, url, desired_format):
        video_id = store.validate(url, desired_format)
        video_info = remote.fetch_oembed(video_id)
        download_url = remote.resolve_download(canonical_url(video_id), desired_format)
        logger.info("Resolved %s (%s) through the download API", video_id, desired_format)
        ext = "mp3" if desired_format == Job.Format.AUDIO else "mp4"
        return Response({
            "success": True,
            "downloadUrl": download_url,
            "filename": safe_filename(video_info.get("title"), ext),
            "videoInfo": video_info,
        })


class InfoView(views.APIView):
    def post(self, request):
        ser = InfoRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        video_id = store.validate(ser.validated_data["url"], Job.Format.VIDEO.value)

        if settings.DOWNLOAD_BACKEND == "proxy":
            info = remote.fetch_oembed(video_id)
        else:
            info = decoder.probe(canonical_url(video_id))

        data = {"success": True, **info}
        if data.get("duration") is None:
            data.pop("duration", None)
        return Response(data)


class FileView(views.APIView):
    """Stream a READY job's artifact. Completing the transfer schedules its deletion."""

    def get(self, request, job_id):
        job = store.get_ready_job(job_id)
        # opened before headers go out; a later sweep cannot pull the file from under us
        f = store.open_artifact(job)
        size = os.fstat(f.fileno()).st_size

        response = StreamingHttpResponse(store.iter_artifact(job, f), content_type="application/octet-stream")
        response["Content-Length"] = str(size)
        response["Content-Disposition"] = content_disposition_header(True, job.filename)
        return response


class JobDetailView(views.APIView):
    def get(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id)
        except Job.DoesNotExist:
            raise JobNotFound()
        return Response(JobSerializer(job).data)


class HealthView(views.APIView):
    def get(self, request):
        return Response({
            "status": "OK",
            "timestamp": timezone.now().isoformat(),
            "service": "tubefetch",
            "backend": settings.DOWNLOAD_BACKEND,
        })
