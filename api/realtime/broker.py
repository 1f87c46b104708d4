"""In-process change-notification broker.

Each SSE client registers a bounded queue under its organization id. Model
signal receivers publish ``{table, event, id, record}`` after commit; the
broker fans the event out to that organization's subscribers whose table and
field filters match. A full queue drops the event with a warning.

Delivery is per process: a subscriber only sees writes made by the worker
process that serves its stream.
"""
import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from django.conf import settings

logger = logging.getLogger(__name__)

_clients: Dict[int, List['Subscription']] = {}
_lock = threading.Lock()


@dataclass(eq=False)
class Subscription:
    org_id: int
    tables: FrozenSet[str] = frozenset()
    # equality filters on record fields, compared as strings (booleans as true/false)
    filters: Dict[str, str] = field(default_factory=dict)
    queue: 'queue.Queue[Dict[str, Any]]' = field(default=None)  # type: ignore[assignment]

    def __post_init__(self):
        if self.queue is None:
            self.queue = queue.Queue(maxsize=getattr(settings, 'REALTIME_QUEUE_SIZE', 256))

    def matches(self, event: Dict[str, Any]) -> bool:
        if self.tables and event.get('table') not in self.tables:
            return False
        record = event.get('record') or {}
        for key, expected in self.filters.items():
            value = record.get(key)
            if value is None:
                return False
            if isinstance(value, bool):
                # query strings spell booleans true/false
                if json.dumps(value) != expected.lower():
                    return False
            elif str(value) != expected:
                return False
        return True


def subscribe(org_id: int, tables=None, filters: Optional[Dict[str, str]] = None) -> Subscription:
    sub = Subscription(org_id=org_id, tables=frozenset(tables or ()), filters=dict(filters or {}))
    with _lock:
        _clients.setdefault(org_id, []).append(sub)
    return sub


def unsubscribe(sub: Subscription) -> None:
    with _lock:
        subs = _clients.get(sub.org_id)
        if not subs:
            return
        try:
            subs.remove(sub)
        except ValueError:
            pass
        if not subs:
            del _clients[sub.org_id]


def publish(org_id: Optional[int], event: Dict[str, Any]) -> int:
    """Queue ``event`` for every matching subscriber of ``org_id``; returns the delivery count."""
    if org_id is None:
        return 0
    delivered = 0
    with _lock:
        subs = list(_clients.get(org_id, ()))
    for sub in subs:
        if not sub.matches(event):
            continue
        try:
            sub.queue.put_nowait(event)
            delivered += 1
        except queue.Full:
            logger.warning('realtime queue full for org %s, dropping %s %s', org_id, event.get('table'), event.get('event'))
    return delivered


def subscriber_count(org_id: Optional[int] = None) -> int:
    with _lock:
        if org_id is not None:
            return len(_clients.get(org_id, ()))
        return sum(len(v) for v in _clients.values())
