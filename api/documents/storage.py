"""Document bytes in Django's default storage, plus signed download links.

Download tokens are ``TimestampSigner`` objects carrying the storage key and
their own lifetime, so different links can expire at different times.
"""
import logging
from typing import Optional

from django.conf import settings
from django.core import signing
from django.core.files.storage import default_storage
from django.urls import reverse

from app.common.files import document_storage_path

logger = logging.getLogger(__name__)

_SALT = 'documents.download'


def save_upload(user_id, uploaded) -> str:
    """Store an uploaded file under ``<user_id>/<millis>-<safe name>``; returns the key."""
    return default_storage.save(document_storage_path(user_id, uploaded.name), uploaded)


def delete_file(path: str) -> bool:
    """Remove ``path`` from storage. Failures are logged and reported as False."""
    try:
        default_storage.delete(path)
    except OSError as exc:
        logger.warning('storage delete of %s failed: %s', path, exc)
        return False
    return True


def signed_url(path: str, expires_in: Optional[int] = None, request=None) -> str:
    expires_in = int(expires_in or settings.SIGNED_URL_DEFAULT_EXPIRY)
    token = signing.TimestampSigner(salt=_SALT).sign_object({'p': path, 'x': expires_in})
    url = reverse('storage-download', kwargs={'token': token})
    return request.build_absolute_uri(url) if request is not None else url


def resolve_token(token: str) -> str:
    """Return the storage key for a download token.

    Raises ``signing.BadSignature`` (or its ``SignatureExpired`` subclass).
    """
    signer = signing.TimestampSigner(salt=_SALT)
    payload = signer.unsign_object(token)
    if not isinstance(payload, dict) or 'p' not in payload:
        raise signing.BadSignature('malformed token')
    signer.unsign_object(token, max_age=int(payload.get('x') or settings.SIGNED_URL_DEFAULT_EXPIRY))
    return payload['p']
