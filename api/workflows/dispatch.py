"""Outbound half of the workflow-engine handoff.

``dispatch_workflow`` writes a ``running`` ledger row and fires one POST at
``{WORKFLOW_ENGINE_URL}/<path>``. The POST is best-effort: it is sent after
the surrounding transaction commits, off the request thread (or through
Celery when WORKFLOW_DISPATCH_ASYNC is on), and any failure is only logged.
The engine reports back through ``POST /api/webhook`` (see webhooks.py).
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from django.db import transaction

from .models import WorkflowExecution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowTask:
    name: str
    path: str
    # body key carrying the ledger id
    id_key: str = 'workflow_id'


WORKFLOWS: Dict[str, WorkflowTask] = {
    t.name: t
    for t in (
        WorkflowTask('grant-discovery', 'discover-grants'),
        WorkflowTask('eligibility-screening', 'screen-grant'),
        WorkflowTask('analyze-funder', 'analyze-funder'),
        WorkflowTask('generate-proposal', 'generate-proposal'),
        WorkflowTask('review-proposal', 'review-proposal'),
        WorkflowTask('generate-budget', 'generate-budget'),
        WorkflowTask('report_generation', 'draft-report', id_key='execution_id'),
        WorkflowTask('generate-checklist', 'generate-checklist'),
        WorkflowTask('auto-submit', 'prepare-submission'),
        WorkflowTask('customize-narrative', 'customize-narrative'),
        WorkflowTask('categorize-document', 'get-documents'),
        WorkflowTask('record-award', 'record-award'),
    )
}

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='workflow-notify')


class UnknownWorkflow(KeyError):
    pass


def dispatch_workflow(
    org,
    workflow_name: str,
    payload: Optional[Dict[str, Any]] = None,
    *,
    grant=None,
    metadata: Optional[Dict[str, Any]] = None,
) -> WorkflowExecution:
    """Record a ledger row and schedule the engine notification.

    A failing ledger insert propagates (DatabaseError) and nothing is sent.
    """
    try:
        task = WORKFLOWS[workflow_name]
    except KeyError:
        raise UnknownWorkflow(workflow_name) from None
    execution = WorkflowExecution.objects.create(
        org=org,
        grant=grant,
        workflow_name=task.name,
        status='running',
        webhook_url=f'/webhook/{task.path}',
        metadata=metadata or {},
    )
    body = {**(payload or {}), task.id_key: str(execution.id)}
    logger.info('dispatched %s (%s) for org %s', task.name, execution.id, getattr(org, 'id', org))
    transaction.on_commit(lambda: _schedule_notify(task.path, body))
    return execution


def dispatch_response(execution: WorkflowExecution) -> Dict[str, Any]:
    return {'success': True, 'workflowId': str(execution.id)}


def _schedule_notify(path: str, body: Dict[str, Any]) -> None:
    if not settings.WORKFLOW_ENGINE_URL:
        logger.debug('WORKFLOW_ENGINE_URL not set; skipping %s', path)
        return
    if getattr(settings, 'WORKFLOW_DISPATCH_ASYNC', False) and getattr(settings, 'CELERY_BROKER_URL', ''):
        from .tasks import notify_engine_task

        try:
            notify_engine_task.delay(path, body)
            return
        except Exception as exc:  # noqa: BLE001 - broker outage of any kind
            logger.warning('enqueue of %s failed, notifying in-process: %s', path, exc)
    if getattr(settings, 'WORKFLOW_NOTIFY_INLINE', False):
        notify_engine(path, body)
    else:
        _executor.submit(notify_engine, path, body)


def notify_engine(path: str, body: Dict[str, Any]) -> bool:
    """POST ``body`` to the engine. Never raises; returns whether it was accepted."""
    base = settings.WORKFLOW_ENGINE_URL
    if not base:
        return False
    url = f'{base}/{path}'
    try:
        resp = requests.post(
            url,
            json=body,
            headers={'X-Webhook-Secret': settings.WORKFLOW_WEBHOOK_SECRET or ''},
            timeout=settings.WORKFLOW_ENGINE_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.warning('workflow engine %s webhook failed: %s', path, exc)
        return False
    if resp.status_code >= 400:
        logger.warning('workflow engine %s webhook returned HTTP %s', path, resp.status_code)
        return False
    return True
