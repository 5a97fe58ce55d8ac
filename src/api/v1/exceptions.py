"""Map service-layer errors to API responses."""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import DomainError

logger = logging.getLogger('coaching')


def domain_error_response(exc: DomainError) -> Response:
    return Response(exc.as_payload(), status=exc.status_code)


def domain_exception_handler(exc, context):
    """DRF exception handler that also understands ``DomainError``."""
    if isinstance(exc, DomainError):
        view = context.get('view')
        logger.info(
            'Rejected %s on %s: %s',
            exc.code,
            view.__class__.__name__ if view is not None else '?',
            exc.message,
        )
        return domain_error_response(exc)
    return exception_handler(exc, context)
