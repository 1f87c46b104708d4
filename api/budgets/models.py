from decimal import Decimal

from django.db import models
from django.db.models import Sum


class Budget(models.Model):
    """Cost breakdown for a grant. Templates have ``is_template=True`` and no grant.

    ``total_amount`` is derived: it equals the sum of the line items after
    every line-item write (see ``recompute_total``).
    """

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='budgets')
    grant = models.ForeignKey('grants.Grant', on_delete=models.CASCADE, null=True, blank=True, related_name='budgets')
    name = models.CharField(max_length=300)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    narrative = models.TextField(blank=True, default='')
    is_template = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.name} ({self.total_amount})'

    def recompute_total(self) -> Decimal:
        total = self.line_items.aggregate(total=Sum('amount'))['total'] or Decimal('0')
        self.total_amount = total
        self.save(update_fields=['total_amount', 'updated_at'])
        return total


class BudgetLineItem(models.Model):
    CATEGORY_CHOICES = (
        ('personnel', 'Personnel'),
        ('fringe', 'Fringe'),
        ('travel', 'Travel'),
        ('equipment', 'Equipment'),
        ('supplies', 'Supplies'),
        ('contractual', 'Contractual'),
        ('other', 'Other'),
        ('indirect', 'Indirect'),
    )

    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name='line_items')
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES)
    description = models.CharField(max_length=500)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    justification = models.TextField(blank=True, default='')
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['budget_id', 'sort_order', 'id']

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.category}: {self.description} ({self.amount})'
