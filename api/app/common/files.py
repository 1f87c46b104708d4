"""File helpers shared by document and avatar uploads.

These helpers avoid depending on Django settings so they can be imported in
migrations or celery contexts without side-effects.
"""

from __future__ import annotations

import os
import re
import time
import unicodedata

_SAFE_FILENAME_RE = re.compile(r'[^A-Za-z0-9._-]+')

# Leading bytes per declared content type. xlsx/docx are ZIP containers.
_SIGNATURES: dict[str, tuple[bytes, ...]] = {
    'application/pdf': (b'%PDF',),
    'image/png': (b'\x89PNG\r\n\x1a\n',),
    'image/jpeg': (b'\xff\xd8',),
    'image/webp': (b'RIFF',),
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document': (b'PK\x03\x04',),
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': (b'PK\x03\x04',),
}

_EXTENSIONS = {
    'application/pdf': 'pdf',
    'image/png': 'png',
    'image/jpeg': 'jpg',
    'image/webp': 'webp',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document': 'docx',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': 'xlsx',
}


def safe_filename(name: str, max_length: int = 100) -> str:
    """Return a sanitized filename base while preserving extension.

    Steps:
    - Split extension (last dot) if any (<=15 chars ext preserved).
    - Normalize unicode to NFKD and strip combining marks.
    - Replace invalid chars with '-'; collapse repeats; strip dots.
    - Enforce length (including extension); never return empty => 'file'.
    """
    name = os.path.basename(name.strip().replace('\x00', '').replace('\\', '/')) or 'file'
    base, ext = os.path.splitext(name)
    if len(ext) > 16:
        base = name
        ext = ''
    norm = unicodedata.normalize('NFKD', base)
    norm = ''.join(ch for ch in norm if not unicodedata.combining(ch))
    norm = _SAFE_FILENAME_RE.sub('-', norm)
    norm = re.sub(r'-+', '-', norm).strip('.-') or 'file'
    avail = max_length - len(ext)
    if avail < 1:
        ext = ext[: max(0, max_length - 1)]
        avail = max_length - len(ext)
    norm = norm[:avail]
    return f'{norm}{ext}' if ext else norm


def document_storage_path(user_id: int | str, name: str, *, now: float | None = None) -> str:
    """Storage key for an uploaded document: ``<user_id>/<epoch-millis>-<safe name>``."""
    millis = int((now if now is not None else time.time()) * 1000)
    return f'{user_id}/{millis}-{safe_filename(name)}'


def avatar_storage_path(user_id: int | str, content_type: str, name: str = '') -> str:
    """Storage key for a profile avatar; one object per user, overwritten on re-upload."""
    ext = os.path.splitext(name)[1].lstrip('.').lower() if name else ''
    if not ext or len(ext) > 5:
        ext = _EXTENSIONS.get(content_type, 'bin')
    return f'avatars/{user_id}/avatar.{ext}'


def matches_signature(head: bytes, content_type: str) -> bool:
    """True when ``head`` starts with a magic number valid for ``content_type``.

    Types without a registered signature are accepted.
    """
    sigs = _SIGNATURES.get((content_type or '').lower())
    if not sigs:
        return True
    return any(head.startswith(s) for s in sigs)
