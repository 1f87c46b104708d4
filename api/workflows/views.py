import logging
import time

import requests
from django.conf import settings
from rest_framework import viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import HasOrganization, OrgScopedMixin
from app.common.keys import t
from .models import WorkflowExecution
from .serializers import WorkflowExecutionSerializer

logger = logging.getLogger(__name__)

RECENT_LIMIT = 20


class WorkflowExecutionViewSet(OrgScopedMixin, viewsets.ReadOnlyModelViewSet):
    """Ledger rows for the caller's organization, newest first.

    ``?grant_id=`` narrows the list to one grant; the list is capped to the
    most recent rows.
    """

    queryset = WorkflowExecution.objects.all()
    serializer_class = WorkflowExecutionSerializer
    pagination_class = None

    def list(self, request, *args, **kwargs):
        qs = self.get_queryset()
        grant_id = request.query_params.get('grant_id')
        if grant_id:
            if not grant_id.isdigit():
                return Response({'error': 'Invalid grant_id'}, status=400)
            qs = qs.filter(grant_id=int(grant_id))
        name = request.query_params.get('workflow_name')
        if name:
            qs = qs.filter(workflow_name=name)
        return Response(self.get_serializer(qs[:RECENT_LIMIT], many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def integrations_test(request):
    """Probe the workflow engine base URL and report reachability."""
    url = settings.WORKFLOW_ENGINE_URL
    if not url:
        return Response({'connected': False, 'latency': 0, 'status': None, 'error': t('integrations.not_configured')})
    start = time.monotonic()
    try:
        resp = requests.get(url, timeout=10)
    except requests.RequestException as exc:
        latency = int((time.monotonic() - start) * 1000)
        logger.warning('workflow engine probe failed: %s', exc)
        return Response({'connected': False, 'latency': latency, 'status': None, 'error': str(exc) or t('integrations.connection_failed')})
    latency = int((time.monotonic() - start) * 1000)
    return Response(
        {
            'connected': resp.ok,
            'latency': latency,
            'status': resp.status_code,
            'error': None if resp.ok else f'HTTP {resp.status_code}',
        }
    )
