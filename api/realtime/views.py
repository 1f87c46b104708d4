import json
import logging
import queue

from django.conf import settings
from django.http import StreamingHttpResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import HasOrganization
from . import broker
from .signals import WATCHED

logger = logging.getLogger(__name__)

RESERVED_PARAMS = {'tables', 'format'}


class EventStreamRenderer(BaseRenderer):
    """Lets ``Accept: text/event-stream`` pass negotiation; error bodies render as JSON."""

    media_type = 'text/event-stream'
    format = 'sse'
    charset = 'utf-8'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b''
        return json.dumps(data).encode('utf-8')


def format_event(name: str, payload) -> str:
    return f'event: {name}\ndata: {json.dumps(payload, separators=(",", ":"))}\n\n'


def event_stream(org_id: int, tables, filters, heartbeat: float):
    sub = broker.subscribe(org_id, tables, filters)
    try:
        yield format_event('connected', {'org_id': sub.org_id, 'tables': sorted(sub.tables)})
        while True:
            try:
                event = sub.queue.get(timeout=heartbeat)
            except queue.Empty:
                yield f': heartbeat {timezone.now().isoformat()}\n\n'
                continue
            yield format_event('change', event)
    finally:
        broker.unsubscribe(sub)
        logger.debug('realtime client for org %s disconnected', sub.org_id)


class RealtimeStreamView(APIView):
    """GET /api/realtime?tables=grants,proposals&grant_id=5

    Server-sent events for committed changes in the caller's organization.
    ``tables`` limits the feed to the named tables; any other query parameter
    is an equality filter on the changed record.
    """

    permission_classes = [IsAuthenticated, HasOrganization]
    renderer_classes = [JSONRenderer, EventStreamRenderer]

    def get(self, request):
        raw = request.query_params.get('tables') or ''
        tables = [name.strip() for name in raw.split(',') if name.strip()]
        unknown = [name for name in tables if name not in WATCHED]
        if unknown:
            return self._error(f'Unknown table: {unknown[0]}')
        filters = {k: v for k, v in request.query_params.items() if k not in RESERVED_PARAMS}
        heartbeat = float(getattr(settings, 'REALTIME_HEARTBEAT_SECONDS', 30))
        response = StreamingHttpResponse(
            event_stream(request.org.id, tables, filters, heartbeat),
            content_type='text/event-stream',
        )
        response['Cache-Control'] = 'no-cache'
        response['X-Accel-Buffering'] = 'no'
        return response

    def _error(self, message):
        return Response({'error': message}, status=400)
