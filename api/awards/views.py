import logging

from django.db import DatabaseError, transaction
from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from workflows.dispatch import dispatch_response, dispatch_workflow
from .models import Award, Report
from .serializers import AwardSerializer, ReportSerializer

logger = logging.getLogger(__name__)


class AwardViewSet(OrgScopedMixin, viewsets.ModelViewSet):
    queryset = Award.objects.select_related('grant')
    serializer_class = AwardSerializer
    pagination_class = None

    def retrieve(self, request, *args, **kwargs):
        award = self.get_object()
        data = dict(self.get_serializer(award).data)
        data['reports'] = ReportSerializer(award.reports.all(), many=True).data
        return Response(data)

    def perform_create(self, serializer):
        with transaction.atomic():
            award = serializer.save(org=self.request.org)
        # the award stands even when the stage bump fails
        try:
            with transaction.atomic():
                grant = award.grant
                grant.stage = 'awarded'
                grant.save(update_fields=['stage', 'updated_at'])
        except DatabaseError as exc:
            logger.warning('failed to mark grant %s awarded: %s', award.grant_id, exc)
        try:
            with transaction.atomic():
                dispatch_workflow(
                    self.request.org,
                    'record-award',
                    {'award_id': award.id, 'grant_id': award.grant_id},
                    grant=award.grant,
                )
        except DatabaseError as exc:
            logger.warning('record-award dispatch failed for award %s: %s', award.id, exc)


class ReportViewSet(OrgScopedMixin, viewsets.ModelViewSet):
    """Award reports. New reports start as drafts; moving to ``submitted`` stamps ``submitted_at``."""

    queryset = Report.objects.select_related('award')
    serializer_class = ReportSerializer
    pagination_class = None

    def get_queryset(self):
        qs = super().get_queryset()
        award_id = self.request.query_params.get('award_id')
        if award_id and award_id.isdigit():
            qs = qs.filter(award_id=int(award_id))
        return qs

    def perform_create(self, serializer):
        award = serializer.validated_data['award']
        with transaction.atomic():
            serializer.save(org=self.request.org, grant_id=award.grant_id, status='draft')

    def perform_update(self, serializer):
        extra = {}
        status = serializer.validated_data.get('status')
        if status == 'submitted' and serializer.instance.status != 'submitted':
            extra['submitted_at'] = timezone.now()
        with transaction.atomic():
            serializer.save(**extra)

    @action(detail=True, methods=['post'])
    def generate(self, request, pk=None):
        report = self.get_object()
        refs = {'award_id': report.award_id, 'report_id': report.id}
        execution = dispatch_workflow(
            request.org,
            'report_generation',
            refs,
            grant=report.award.grant,
            metadata=refs,
        )
        return Response(dispatch_response(execution))
