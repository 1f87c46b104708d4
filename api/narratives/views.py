from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from workflows.dispatch import dispatch_response, dispatch_workflow
from .models import Narrative
from .serializers import CustomizeNarrativeSerializer, NarrativeSerializer


class NarrativeViewSet(OrgScopedMixin, viewsets.ModelViewSet):
    queryset = Narrative.objects.all()
    serializer_class = NarrativeSerializer
    pagination_class = None

    def get_queryset(self):
        qs = super().get_queryset()
        category = self.request.query_params.get('category')
        if category:
            qs = qs.filter(category=category)
        return qs

    @action(detail=True, methods=['post'])
    def customize(self, request, pk=None):
        """Ask the engine to tailor this narrative to a grant."""
        narrative = self.get_object()
        ser = CustomizeNarrativeSerializer(data=request.data, context={'request': request})
        ser.is_valid(raise_exception=True)
        grant = ser.validated_data['grant_id']
        execution = dispatch_workflow(
            request.org,
            'customize-narrative',
            {'narrative_id': narrative.id, 'grant_id': grant.id},
            grant=grant,
        )
        return Response(dispatch_response(execution))
