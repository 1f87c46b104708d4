from typing import Iterable, Mapping

from django.db import transaction

from .models import Budget, BudgetLineItem


def replace_line_items(budget: Budget, items: Iterable[Mapping]) -> Budget:
    """Swap the budget's line items for ``items`` (ordered as given) and refresh the total."""
    with transaction.atomic():
        budget.line_items.all().delete()
        BudgetLineItem.objects.bulk_create(
            [
                BudgetLineItem(
                    budget=budget,
                    category=item['category'],
                    description=item['description'],
                    amount=item['amount'],
                    justification=item.get('justification') or '',
                    sort_order=index,
                )
                for index, item in enumerate(items)
            ]
        )
        budget.recompute_total()
    return budget


def copy_as_template(budget: Budget, name: str) -> Budget:
    """Copy a budget and its line items into a grant-less template."""
    with transaction.atomic():
        template = Budget.objects.create(
            org=budget.org,
            grant=None,
            name=name,
            narrative=budget.narrative,
            is_template=True,
        )
        BudgetLineItem.objects.bulk_create(
            [
                BudgetLineItem(
                    budget=template,
                    category=item.category,
                    description=item.description,
                    amount=item.amount,
                    justification=item.justification,
                    sort_order=item.sort_order,
                )
                for item in budget.line_items.all()
            ]
        )
        template.recompute_total()
    return template
