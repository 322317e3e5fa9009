"""
DRF exception handler for domain errors.

Services raise ``payments.exceptions.DomainError`` subclasses without
knowing about HTTP.  This handler turns them into structured JSON
responses using the status code carried by each error class, and
leaves everything else to DRF's default handler.
"""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from payments.exceptions import DomainError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        view = context.get("view")
        logger.info(
            "%s returned %s (%s): %s",
            view.__class__.__name__ if view else "view",
            exc.status_code,
            exc.code,
            exc.message,
        )
        return Response(exc.as_dict(), status=exc.status_code)
    return exception_handler(exc, context)
