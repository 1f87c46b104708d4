from django.db import transaction
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from workflows.dispatch import dispatch_response, dispatch_workflow
from .models import Proposal
from .serializers import (
    GenerateProposalSerializer,
    ProposalSectionSerializer,
    ProposalSerializer,
    SectionReorderSerializer,
    SectionsUpdateSerializer,
)


class ProposalViewSet(
    OrgScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Proposals are created by the generate-proposal workflow; users edit sections and order."""

    queryset = Proposal.objects.select_related('grant').order_by('-updated_at', '-id')
    serializer_class = ProposalSerializer
    pagination_class = None

    def retrieve(self, request, *args, **kwargs):
        proposal = self.get_object()
        data = dict(self.get_serializer(proposal).data)
        data['sections'] = ProposalSectionSerializer(proposal.sections.all(), many=True).data
        return Response(data)

    @action(detail=False, methods=['post'])
    def generate(self, request):
        ser = GenerateProposalSerializer(data=request.data, context={'request': request})
        ser.is_valid(raise_exception=True)
        grant = ser.validated_data['grant_id']
        execution = dispatch_workflow(request.org, 'generate-proposal', {'grant_id': grant.id}, grant=grant)
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['post'])
    def review(self, request, pk=None):
        proposal = self.get_object()
        execution = dispatch_workflow(
            request.org,
            'review-proposal',
            {'proposal_id': proposal.id},
            grant=proposal.grant,
        )
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['put'])
    def sections(self, request, pk=None):
        """Bulk-save edited sections (and optionally the cover title) in one transaction."""
        proposal = self.get_object()
        ser = SectionsUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        rows = ser.validated_data['sections']
        by_id = {s.id: s for s in proposal.sections.filter(id__in=[r['id'] for r in rows])}
        if len(by_id) != len({r['id'] for r in rows}):
            return Response({'error': 'Section not found'}, status=404)
        with transaction.atomic():
            title = ser.validated_data.get('title')
            if title:
                proposal.title = title
                proposal.save(update_fields=['title', 'updated_at'])
            for row in rows:
                section = by_id[row['id']]
                section.title = row['title']
                for key in ('content', 'header1', 'header2', 'tabulation'):
                    if key in row:
                        setattr(section, key, row[key])
                section.save(update_fields=['title', 'content', 'header1', 'header2', 'tabulation', 'updated_at'])
        return Response({'success': True})

    @action(detail=True, methods=['post'], url_path='sections/reorder')
    def reorder(self, request, pk=None):
        """Assign ``sort_order`` from the position of each id in ``section_ids``."""
        proposal = self.get_object()
        ser = SectionReorderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ids = ser.validated_data['section_ids']
        sections = {s.id: s for s in proposal.sections.all()}
        if len(set(ids)) != len(ids) or set(ids) != set(sections):
            return Response({'error': 'Invalid section ids'}, status=400)
        with transaction.atomic():
            for index, section_id in enumerate(ids):
                section = sections[section_id]
                if section.sort_order != index:
                    section.sort_order = index
                    section.save(update_fields=['sort_order', 'updated_at'])
        return Response(ProposalSectionSerializer(proposal.sections.all(), many=True).data)
