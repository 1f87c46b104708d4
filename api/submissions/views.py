from django.db import transaction
from django.db.models import F
from django.http import JsonResponse
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from grants.models import Grant
from workflows.dispatch import dispatch_response, dispatch_workflow
from .models import Submission, SubmissionChecklist
from .serializers import (
    AutoSubmitSerializer,
    ChecklistSerializer,
    ItemToggleSerializer,
    ManualSubmissionSerializer,
    SubmissionSerializer,
)
from .services import InvalidItemIndex, set_item_completed, urgency, urgency_label


class GrantSubmissionViewSet(OrgScopedMixin, viewsets.GenericViewSet):
    """Submission tracking, keyed by grant id.

      GET  /api/submissions/                            overview by deadline
      GET  /api/submissions/<grant_id>/checklist/
      POST /api/submissions/<grant_id>/checklist/generate/
      POST /api/submissions/<grant_id>/auto/            {"portal_url"}
      POST /api/submissions/<grant_id>/manual/          {"confirmation_number", "submitted_at", "notes"}
      GET  /api/submissions/<grant_id>/history/
    """

    queryset = Grant.objects.all()
    lookup_value_regex = r'\d+'
    pagination_class = None

    def list(self, request):
        grants = (
            self.get_queryset()
            .select_related('checklist')
            .prefetch_related('submissions')
            .order_by(F('deadline').asc(nulls_last=True), 'id')
        )
        rows = []
        for grant in grants:
            level = urgency(grant.deadline)
            checklist = getattr(grant, 'checklist', None)
            items = (checklist.items or []) if checklist else []
            submissions = list(grant.submissions.all())
            rows.append(
                {
                    'id': grant.id,
                    'title': grant.title,
                    'funder_name': grant.funder_name,
                    'deadline': grant.deadline,
                    'stage': grant.stage,
                    'urgency': level,
                    'urgency_label': urgency_label(level),
                    'checklist': {
                        'id': checklist.id,
                        'completed': sum(1 for it in items if isinstance(it, dict) and it.get('completed')),
                        'total': len(items),
                        'completion_percentage': checklist.completion_percentage,
                    }
                    if checklist
                    else None,
                    'submissions': SubmissionSerializer(submissions, many=True).data,
                    'submitted': any(s.status == 'completed' for s in submissions),
                }
            )
        return Response(rows)

    @action(detail=True, methods=['get'])
    def checklist(self, request, pk=None):
        grant = self.get_object()
        checklist = SubmissionChecklist.objects.filter(grant=grant).first()
        if checklist is None:
            return JsonResponse(None, safe=False)
        return Response(ChecklistSerializer(checklist).data)

    @action(detail=True, methods=['post'], url_path='checklist/generate')
    def generate_checklist(self, request, pk=None):
        grant = self.get_object()
        execution = dispatch_workflow(request.org, 'generate-checklist', {'grant_id': grant.id}, grant=grant)
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['post'])
    def auto(self, request, pk=None):
        grant = self.get_object()
        ser = AutoSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        execution = dispatch_workflow(
            request.org,
            'auto-submit',
            {'grant_id': grant.id, 'portal_url': ser.validated_data['portal_url']},
            grant=grant,
        )
        return Response(dispatch_response(execution))

    @action(detail=True, methods=['post'])
    def manual(self, request, pk=None):
        grant = self.get_object()
        ser = ManualSubmissionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        with transaction.atomic():
            submission = Submission.objects.create(
                org=request.org,
                grant=grant,
                method='manual',
                status='completed',
                confirmation_number=ser.validated_data['confirmation_number'],
                submitted_at=ser.validated_data['submitted_at'],
                notes=ser.validated_data.get('notes') or '',
            )
        return Response(SubmissionSerializer(submission).data, status=201)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        grant = self.get_object()
        qs = grant.submissions.order_by(F('submitted_at').desc(nulls_last=True), '-id')
        return Response(SubmissionSerializer(qs, many=True).data)


class ChecklistViewSet(OrgScopedMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = SubmissionChecklist.objects.all()
    lookup_value_regex = r'\d+'
    serializer_class = ChecklistSerializer

    @action(detail=True, methods=['patch'], url_path=r'items/(?P<index>-?\d+)')
    def item(self, request, pk=None, index=None):
        """Toggle item ``index``: stamps or clears ``completed_at`` and refreshes the percentage."""
        ser = ItemToggleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            checklist = set_item_completed(int(pk), int(index), ser.validated_data['completed'], org=request.org)
        except SubmissionChecklist.DoesNotExist:
            return Response({'error': 'Not found.'}, status=404)
        except InvalidItemIndex:
            return Response({'error': 'Invalid item index'}, status=400)
        return Response(ChecklistSerializer(checklist).data)
