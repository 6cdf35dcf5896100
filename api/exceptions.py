import logging

from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import InvalidRequest, JobError

logger = logging.getLogger(__name__)


def error_response(error: JobError) -> Response:
    return Response(
        {"success": False, "error": error.code, "detail": error.detail},
        status=error.http_status,
    )


def job_exception_handler(exc, context):
    """
    Render JobErrors (and serializer validation errors, as InvalidRequest) in
    the API's ``{success, error, detail}`` shape. Everything else goes through
    DRF's default handler; anything it does not recognise propagates and is
    logged by django.request.
    """
    if isinstance(exc, (exceptions.ValidationError, exceptions.ParseError)):
        logger.info("Rejected request: %s", exc.detail)
        return error_response(InvalidRequest())
    if isinstance(exc, JobError):
        return error_response(exc)
    return exception_handler(exc, context)
