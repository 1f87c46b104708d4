"""Write-back actions invoked by the workflow engine through ``POST /api/webhook``.

Each action receives the callback's ``data`` object and performs plain inserts
or updates. Keys map to model columns (``grant_id``, ``org_id`` ...); a key
that names no column fails the whole action. Payloads are otherwise trusted:
the only validation is what the database enforces.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from django.db import models
from django.utils import timezone

from awards.models import Award, Report
from budgets.models import Budget
from documents.models import Document
from grants.models import ActivityLog, Funder, Grant
from proposals.models import Proposal, ProposalSection
from submissions.models import Submission, SubmissionChecklist, completion_percentage

from .models import WorkflowExecution

logger = logging.getLogger(__name__)

Action = Callable[[Dict[str, Any]], None]

ACTIONS: Dict[str, Action] = {}


class UnknownColumn(ValueError):
    pass


def action(name: str):
    def register(fn: Action) -> Action:
        ACTIONS[name] = fn
        return fn

    return register


def _columns(model, data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate payload keys to attribute names accepted by ``model(**kw)``."""
    fields = {}
    for f in model._meta.concrete_fields:
        fields[f.attname] = f.attname
        # {"grant": 5} is accepted as {"grant_id": 5}
        fields.setdefault(f.name, f.attname)
    out = {}
    for key, value in (data or {}).items():
        try:
            out[fields[key]] = value
        except KeyError:
            raise UnknownColumn(f"column '{key}' of relation '{model._meta.db_table}' does not exist") from None
    return out


def _auto_now_fields(model) -> list:
    return [f.attname for f in model._meta.concrete_fields if getattr(f, 'auto_now', False)]


def _create(model, data: Dict[str, Any]) -> models.Model:
    obj = model(**_columns(model, data))
    obj.save(force_insert=True)
    return obj


def _create_many(model, rows: Optional[Iterable[Dict[str, Any]]]) -> list:
    # per-row saves so post_save (realtime) fires for each row
    return [_create(model, row) for row in rows or []]


def _update(model, data: Dict[str, Any]) -> Optional[models.Model]:
    """Apply ``data`` minus ``id`` to the row ``data['id']``.

    A missing row matches nothing and is not an error.
    """
    values = dict(data or {})
    pk = values.pop('id', None)
    if pk is None:
        raise ValueError(f'{model.__name__} update requires an id')
    changes = _columns(model, values)
    obj = model.objects.filter(pk=pk).first()
    if obj is None:
        logger.warning('%s %s not found; update matched no rows', model.__name__, pk)
        return None
    if not changes:
        return obj
    for attname, value in changes.items():
        setattr(obj, attname, value)
    obj.save(update_fields=list(changes) + [f for f in _auto_now_fields(model) if f not in changes])
    return obj


@action('update_grant')
def update_grant(data):
    _update(Grant, data)


@action('insert_grants')
def insert_grants(data):
    _create_many(Grant, data.get('grants'))


@action('update_workflow')
def update_workflow(data):
    values = dict(data)
    if values.get('status') in WorkflowExecution.TERMINAL_STATUSES and not values.get('completed_at'):
        values['completed_at'] = timezone.now()
    _update(WorkflowExecution, values)


@action('log_activity')
def log_activity(data):
    _create(ActivityLog, data)


@action('update_document')
def update_document(data):
    _update(Document, data)


@action('insert_proposal')
def insert_proposal(data):
    _create(Proposal, data.get('proposal') or {})


@action('insert_proposal_sections')
def insert_proposal_sections(data):
    _create_many(ProposalSection, data.get('sections'))


@action('create_proposal')
def create_proposal(data):
    proposal = _create(Proposal, data.get('proposal') or {})
    for row in data.get('sections') or []:
        _create(ProposalSection, {**row, 'proposal_id': proposal.pk})


@action('update_proposal')
def update_proposal(data):
    _update(Proposal, data)


@action('insert_funder')
def insert_funder(data):
    _create(Funder, data.get('funder') or {})


@action('update_funder')
def update_funder(data):
    _update(Funder, data)


@action('update_budget')
def update_budget(data):
    _update(Budget, data)


@action('update_award')
def update_award(data):
    _update(Award, data)


@action('insert_reports')
def insert_reports(data):
    _create_many(Report, data.get('reports'))


@action('update_report')
def update_report(data):
    _update(Report, data)


@action('insert_checklist')
def insert_checklist(data):
    grant_id = data.get('grant_id')
    items = data.get('items') or []
    org_id = data.get('org_id')
    if org_id is None:
        org_id = Grant.objects.values_list('org_id', flat=True).get(pk=grant_id)
    SubmissionChecklist.objects.update_or_create(
        grant_id=grant_id,
        defaults={
            'org_id': org_id,
            'items': items,
            'completion_percentage': completion_percentage(items),
        },
    )


@action('update_checklist')
def update_checklist(data):
    values = dict(data)
    if 'items' in values:
        values['completion_percentage'] = completion_percentage(values['items'])
    _update(SubmissionChecklist, values)


@action('submission_complete')
def submission_complete(data):
    values = dict(data)
    workflow_id = values.pop('workflow_id', None)
    values.setdefault('method', 'auto')
    values.setdefault('submitted_at', timezone.now())
    if values.get('org_id') is None and values.get('grant_id') is not None:
        values['org_id'] = Grant.objects.values_list('org_id', flat=True).get(pk=values['grant_id'])
    _create(Submission, values)
    if workflow_id:
        _update(WorkflowExecution, {'id': workflow_id, 'status': 'completed', 'completed_at': timezone.now()})
