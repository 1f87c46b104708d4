from django.http import JsonResponse
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from workflows.dispatch import dispatch_response, dispatch_workflow
from workflows.serializers import WorkflowExecutionSerializer
from .models import Funder, Grant
from .serializers import (
    ActivityLogSerializer,
    AnalyzeFunderSerializer,
    DiscoverSerializer,
    FunderSerializer,
    GrantSerializer,
)


class GrantViewSet(OrgScopedMixin, viewsets.ModelViewSet):
    """Grant pipeline CRUD plus the discovery/screening/funder-analysis dispatchers."""

    queryset = Grant.objects.all()
    serializer_class = GrantSerializer
    pagination_class = None

    def get_queryset(self):
        qs = super().get_queryset()
        stage = self.request.query_params.get('stage')
        if stage:
            qs = qs.filter(stage=stage)
        return qs

    def retrieve(self, request, *args, **kwargs):
        grant = self.get_object()
        data = dict(self.get_serializer(grant).data)
        data['activities'] = ActivityLogSerializer(grant.activities.all()[:20], many=True).data
        data['workflows'] = WorkflowExecutionSerializer(grant.workflow_executions.all()[:10], many=True).data
        data['proposals'] = list(grant.proposals.order_by('-created_at').values('id', 'title', 'status'))
        return Response(data)

    @action(detail=False, methods=['post'])
    def discover(self, request):
        ser = DiscoverSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        execution = dispatch_workflow(
            request.org,
            'grant-discovery',
            {'query': ser.validated_data['query'], 'org_id': request.org.id},
        )
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['post'])
    def screen(self, request, pk=None):
        grant = self.get_object()
        execution = dispatch_workflow(
            request.org,
            'eligibility-screening',
            {'grant_id': grant.id, 'org_id': request.org.id},
            grant=grant,
        )
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['post'], url_path='analyze-funder')
    def analyze_funder(self, request, pk=None):
        grant = self.get_object()
        ser = AnalyzeFunderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        execution = dispatch_workflow(
            request.org,
            'analyze-funder',
            {
                'grant_id': grant.id,
                'funder_name': ser.validated_data['funder_name'],
                'ein': ser.validated_data.get('ein') or None,
            },
            grant=grant,
        )
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['get'])
    def funder(self, request, pk=None):
        """Funder research for this grant's funder, or null when none exists yet."""
        grant = self.get_object()
        qs = Funder.objects.filter(org=request.org)
        if grant.funder_name:
            qs = qs.filter(name=grant.funder_name)
        funder = qs.order_by('-updated_at').first()
        if funder is None:
            # DRF renders None as an empty body
            return JsonResponse(None, safe=False)
        return Response(FunderSerializer(funder).data)
