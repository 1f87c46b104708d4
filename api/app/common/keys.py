"""User-facing copy loaded from ``locales/en.yml``.

Nested YAML mappings are flattened into dot keys (``invites.email.subject``)
and exposed through ``t(key, **kwargs)`` with ``str.format`` interpolation.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import yaml

_LOCK = threading.RLock()
_KEYS: dict[str, str] = {}
_LOCALE_FILE = Path(__file__).resolve().parents[2] / 'locales' / 'en.yml'
_LAST_MTIME: float | None = None


def _flatten(prefix: str, data: dict[str, Any], out: dict[str, str]) -> None:
    for k, v in data.items():
        key = f'{prefix}.{k}' if prefix else k
        if isinstance(v, dict):
            _flatten(key, v, out)
        else:
            out[key] = v if isinstance(v, str) else str(v)


def _load(force: bool = False) -> None:
    global _KEYS, _LAST_MTIME
    if not _LOCALE_FILE.exists():
        return
    mtime = _LOCALE_FILE.stat().st_mtime
    if not force and _LAST_MTIME is not None and mtime == _LAST_MTIME:
        return
    with _LOCK:
        with _LOCALE_FILE.open('r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
        flat: dict[str, str] = {}
        if isinstance(raw, dict):
            _flatten('', raw, flat)
        _KEYS = flat
        _LAST_MTIME = mtime


def t(key: str, **kwargs: Any) -> str:
    """Fetch a copy string and format it with kwargs.

    A missing key returns the key itself; missing interpolation variables leave
    the template unformatted.
    """
    from django.conf import settings

    if getattr(settings, 'DEBUG', False):
        # hot reload while editing copy locally
        _load()
    msg = _KEYS.get(key, key)
    if not kwargs:
        return msg
    try:
        return msg.format(**kwargs)
    except (KeyError, IndexError, ValueError):
        return msg


def ready() -> None:
    _load(force=True)


__all__ = ['t', 'ready']
