"""
Typed failures raised by the job store and its collaborators.

Each carries the public error ``code`` returned to clients and the HTTP status
the API maps it to. Decoder diagnostics ride along on the exception so they can
be logged and stored, but they are never part of the response.
"""


class JobError(Exception):
    code = "JobError"
    http_status = 500
    default_detail = "Job failed."

    def __init__(self, detail: str | None = None, *, diagnostics: str = ""):
        self.detail = detail or self.default_detail
        self.diagnostics = diagnostics
        super().__init__(self.detail)


class InvalidRequest(JobError):
    code = "InvalidRequest"
    http_status = 400
    default_detail = "A valid YouTube URL and a supported format are required."


class ConversionFailed(JobError):
    code = "ConversionFailed"
    http_status = 500
    default_detail = "The decoder exited with an error."


class ConversionTimeout(JobError):
    code = "Timeout"
    http_status = 504
    default_detail = "The decoder did not finish in time."


class ArtifactMissing(JobError):
    code = "ArtifactMissing"
    http_status = 500
    default_detail = "The decoder finished but produced no file."


class JobNotFound(JobError):
    code = "NotFound"
    http_status = 404
    default_detail = "File not found or expired."


class UpstreamError(JobError):
    code = "UpstreamError"
    http_status = 502
    default_detail = "Service temporarily unavailable. Please try again later."


class SweepError(Exception):
    """Cleanup failure for a single downloads entry; logged, never propagated."""

    def __init__(self, entry, cause: Exception):
        self.entry = entry
        self.cause = cause
        super().__init__(f"Could not remove {entry}: {cause}")
