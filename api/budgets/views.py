from django.db import transaction
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from workflows.dispatch import dispatch_response, dispatch_workflow
from .models import Budget
from .serializers import BudgetLineItemSerializer, BudgetListSerializer, BudgetSerializer, SaveTemplateSerializer
from .services import copy_as_template, replace_line_items


class BudgetViewSet(OrgScopedMixin, viewsets.ModelViewSet):
    """Budgets with line items. ``total_amount`` always equals the line-item sum.

    Routes (besides CRUD):
      GET  /api/budgets/templates/
      POST /api/budgets/<id>/save-template/  {"name"}
      GET  /api/budgets/<id>/load/           template name + line items
      POST /api/budgets/<id>/narrative/      generate-budget dispatch
    """

    queryset = Budget.objects.select_related('grant').prefetch_related('line_items')
    serializer_class = BudgetSerializer
    pagination_class = None

    def get_serializer_class(self):
        if self.action in ('list', 'templates'):
            return BudgetListSerializer
        return BudgetSerializer

    def list(self, request, *args, **kwargs):
        qs = self.get_queryset().filter(is_template=False)
        return Response(self.get_serializer(qs, many=True).data)

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        items = ser.validated_data.get('line_items') or []
        with transaction.atomic():
            budget = ser.save(org=request.org)
            replace_line_items(budget, items)
        return Response(BudgetSerializer(self.get_queryset().get(pk=budget.pk)).data, status=201)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        budget = self.get_object()
        ser = self.get_serializer(budget, data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        with transaction.atomic():
            budget = ser.save()
            if 'line_items' in ser.validated_data:
                replace_line_items(budget, ser.validated_data['line_items'])
        return Response(BudgetSerializer(self.get_queryset().get(pk=budget.pk)).data)

    @action(detail=False, methods=['get'])
    def templates(self, request):
        qs = self.get_queryset().filter(is_template=True)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=['post'], url_path='save-template')
    def save_template(self, request, pk=None):
        budget = self.get_object()
        ser = SaveTemplateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        template = copy_as_template(budget, ser.validated_data['name'])
        return Response(BudgetSerializer(self.get_queryset().get(pk=template.pk)).data, status=201)

    @action(detail=True, methods=['get'])
    def load(self, request, pk=None):
        template = self.get_object()
        if not template.is_template:
            return Response({'error': 'Template not found'}, status=404)
        return Response(
            {
                'name': template.name,
                'line_items': BudgetLineItemSerializer(template.line_items.all(), many=True).data,
            }
        )

    @action(detail=True, methods=['post'])
    def narrative(self, request, pk=None):
        budget = self.get_object()
        execution = dispatch_workflow(
            request.org,
            'generate-budget',
            {'budget_id': budget.id},
            grant=budget.grant,
        )
        return Response(dispatch_response(execution))
