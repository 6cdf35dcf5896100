from django.urls import path
from .views import DownloadView, FileView, HealthView, InfoView, JobDetailView

urlpatterns = [
    path("download", DownloadView.as_view(), name="download"),
    path("info", InfoView.as_view(), name="info"),
    path("file/<uuid:job_id>", FileView.as_view(), name="file_download"),
    path("jobs/<uuid:job_id>", JobDetailView.as_view(), name="job_detail"),
    path("health", HealthView.as_view(), name="health"),
]
