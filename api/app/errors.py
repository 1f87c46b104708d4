import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError

DEFAULT_VERSION = 'v1'

logger = logging.getLogger(__name__)


def error_response(error_code: str, message: str, *, status: int = 400, meta: Optional[Dict[str, Any]] = None):
    """Return a standardized error payload structure.

    Shape:
      {"error": {"code": str, "message": str, "meta": {...}, "version": "v1"}}
    """
    from rest_framework.response import Response  # local import to avoid global DRF binding during migrations

    payload = {
        'error': {
            'code': error_code,
            'message': message,
            'version': DEFAULT_VERSION,
        }
    }
    if meta:
        payload['error']['meta'] = meta  # type: ignore[assignment]
    return Response(payload, status=status)


def store_error(exc: Exception, *, status: int = 400):
    """Surface a data-store failure to the caller as its raw message.

    Feature endpoints report integrity/validation failures verbatim, e.g.
    {"error": "NOT NULL constraint failed: grants_grant.title"}.
    """
    from rest_framework.response import Response

    if isinstance(exc, DjangoValidationError):
        message = '; '.join(exc.messages)
    else:
        message = str(exc)
    logger.info('store error: %s', message)
    return Response({'error': message}, status=status)


STORE_ERRORS = (DatabaseError, DjangoValidationError)


def api_exception_handler(exc, context):
    """DRF exception handler flattening auth/permission failures to {"error": str}.

    Field validation errors (dict/list details) keep DRF's default shape.
    """
    from rest_framework import exceptions
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is None:
        return None
    if isinstance(exc, exceptions.NotAuthenticated):
        response.data = {'error': 'Not authenticated'}
        return response
    detail = getattr(exc, 'detail', None)
    if isinstance(exc, exceptions.AuthenticationFailed) and isinstance(detail, dict):
        # simplejwt reports {"detail": ..., "code": ..., "messages": [...]}
        response.data = {'error': str(detail.get('detail') or 'Not authenticated')}
    elif isinstance(detail, str):
        response.data = {'error': str(detail)}
    return response
