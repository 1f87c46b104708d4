"""Publish committed writes on watched models to the realtime broker."""
import json
import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.db.models.signals import post_delete, post_save

from . import broker

logger = logging.getLogger(__name__)

# table name -> "app_label.Model"; tables without their own org column name
# the relation that carries it
WATCHED = {
    'grants': ('grants.Grant', None),
    'activity_log': ('grants.ActivityLog', None),
    'funders': ('grants.Funder', None),
    'proposals': ('proposals.Proposal', None),
    'proposal_sections': ('proposals.ProposalSection', 'proposal'),
    'budgets': ('budgets.Budget', None),
    'budget_line_items': ('budgets.BudgetLineItem', 'budget'),
    'awards': ('awards.Award', None),
    'reports': ('awards.Report', None),
    'documents': ('documents.Document', None),
    'narratives': ('narratives.Narrative', None),
    'submission_checklists': ('submissions.SubmissionChecklist', None),
    'submissions': ('submissions.Submission', None),
    'workflow_executions': ('workflows.WorkflowExecution', None),
}

_TABLE_BY_LABEL = {label.lower(): (table, via) for table, (label, via) in WATCHED.items()}


def serialize_record(instance) -> Dict[str, Any]:
    data = {f.attname: getattr(instance, f.attname) for f in instance._meta.concrete_fields}
    # round-trip through JSON so UUIDs, Decimals and datetimes are plain values
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def _org_id(instance, via: Optional[str]) -> Optional[int]:
    if via is None:
        return getattr(instance, 'org_id', None)
    parent = getattr(instance, via, None)
    return getattr(parent, 'org_id', None)


def _table_for(sender):
    return _TABLE_BY_LABEL.get(sender._meta.label_lower)


def _emit(sender, instance, kind: str) -> None:
    entry = _table_for(sender)
    if entry is None:
        return
    table, via = entry
    try:
        org_id = _org_id(instance, via)
    except ObjectDoesNotExist:
        # parent already removed by a cascading delete
        logger.debug('realtime: no org for %s %s', table, instance.pk)
        return
    event = {
        'table': table,
        'event': kind,
        'id': str(instance.pk),
        'record': serialize_record(instance),
    }
    transaction.on_commit(lambda: broker.publish(org_id, event))


def on_save(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    _emit(sender, instance, 'INSERT' if created else 'UPDATE')


def on_delete(sender, instance, **kwargs):
    _emit(sender, instance, 'DELETE')


def connect() -> None:
    from django.apps import apps

    for label, _via in WATCHED.values():
        model = apps.get_model(label)
        post_save.connect(on_save, sender=model, dispatch_uid=f'realtime-save-{label}')
        post_delete.connect(on_delete, sender=model, dispatch_uid=f'realtime-delete-{label}')
