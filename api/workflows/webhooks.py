import hmac
import json
import logging

from django.conf import settings
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from accounts.rls import service_role

from .actions import ACTIONS

logger = logging.getLogger(__name__)


def _secret_ok(request) -> bool:
    secret = (getattr(settings, 'WORKFLOW_WEBHOOK_SECRET', '') or '').strip()
    if not secret:
        # unsigned callbacks are only accepted in DEBUG
        return bool(settings.DEBUG)
    given = request.META.get('HTTP_X_WEBHOOK_SECRET', '')
    return hmac.compare_digest(given.encode('utf-8'), secret.encode('utf-8'))


@require_POST
@csrf_exempt  # server-to-server callback from the workflow engine; no CSRF token.
# Compensating controls:
#  - shared secret in X-Webhook-Secret (constant-time compare) outside DEBUG
#  - POST-only; body must be a JSON object with a known action
def workflow_webhook(request):
    if not _secret_ok(request):
        return JsonResponse({'error': 'Unauthorized'}, status=401)
    try:
        body = json.loads(request.body.decode('utf-8') or '{}')
    except (UnicodeDecodeError, ValueError):
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    if not isinstance(body, dict):
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    name = body.get('action')
    handler = ACTIONS.get(name) if isinstance(name, str) else None
    if handler is None:
        return JsonResponse({'error': f'Unknown action: {name}'}, status=400)
    data = body.get('data')
    if not isinstance(data, dict):
        data = {}

    try:
        with transaction.atomic(), service_role():
            handler(data)
    except Exception:  # noqa: BLE001 - every write failure maps to 500
        logger.exception('workflow webhook %s failed', name)
        return JsonResponse({'error': 'Internal server error'}, status=500)
    logger.info('workflow webhook %s applied', name)
    return JsonResponse({'success': True})
