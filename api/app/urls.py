import os

from django.conf import settings
from django.conf.urls.static import static
from django.http import HttpResponse
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.views import AvatarView, MeView, PasswordChangeView, PreferencesView, ThrottledTokenObtainPairView
from analytics.views import analytics_funders, analytics_summary, dashboard
from app.errors import error_response
from awards.views import AwardViewSet, ReportViewSet
from budgets.views import BudgetViewSet
from documents.views import DocumentViewSet, storage_download
from grants.views import GrantViewSet
from narratives.views import NarrativeViewSet
from orgs.views import OrganizationViewSet, OrgInviteAcceptView
from proposals.views import ProposalViewSet
from realtime.views import RealtimeStreamView
from submissions.views import ChecklistViewSet, GrantSubmissionViewSet
from workflows.views import WorkflowExecutionViewSet, integrations_test
from workflows.webhooks import workflow_webhook


def healthz(_request):
    return HttpResponse('ok')


@api_view(['GET'])
@permission_classes([AllowAny])
def api_health(_request):
    """Lightweight liveness probe (no DB)."""
    return Response({'status': 'ok'})


@api_view(['GET'])
@permission_classes([AllowAny])
def api_ready(_request):
    """Readiness probe: checks DB and cache connectivity.

    Returns shape:
    {"status":"ok|error","db":bool,"cache":bool,"details":{...}}
    """
    from django.core.cache import cache
    from django.db import DatabaseError, connections

    db_ok = False
    cache_ok = False
    details = {}
    try:
        with connections['default'].cursor() as cur:  # type: ignore[index]
            cur.execute('SELECT 1')
            cur.fetchone()
        db_ok = True
    except DatabaseError as exc:
        details['db_error'] = str(exc)[:200]
    try:
        cache.set('ready_probe', '1', 5)
        cache_ok = cache.get('ready_probe') == '1'
    except Exception as exc:  # noqa: BLE001 - cache backends raise their own client errors
        details['cache_error'] = str(exc)[:200]
    status = 'ok' if db_ok else 'error'
    payload = {'status': status, 'db': db_ok, 'cache': cache_ok, 'details': details}
    if status == 'error':
        return error_response('ready_check_failed', 'One or more readiness checks failed', status=503, meta=payload)
    return Response(payload)


router = DefaultRouter()
router.register(r'grants', GrantViewSet, basename='grant')
router.register(r'proposals', ProposalViewSet, basename='proposal')
router.register(r'budgets', BudgetViewSet, basename='budget')
router.register(r'awards', AwardViewSet, basename='award')
router.register(r'reports', ReportViewSet, basename='report')
router.register(r'documents', DocumentViewSet, basename='document')
router.register(r'narratives', NarrativeViewSet, basename='narrative')
router.register(r'submissions', GrantSubmissionViewSet, basename='submission')
router.register(r'checklists', ChecklistViewSet, basename='checklist')
router.register(r'workflows', WorkflowExecutionViewSet, basename='workflow')

organization = OrganizationViewSet.as_view({'get': 'retrieve', 'patch': 'partial_update', 'post': 'create'})
organization_members = OrganizationViewSet.as_view({'get': 'members'})
organization_member = OrganizationViewSet.as_view({'patch': 'member', 'delete': 'member'})
organization_invites = OrganizationViewSet.as_view({'get': 'invites', 'post': 'invites', 'delete': 'invites'})

urlpatterns = [
    path('healthz', healthz),
    path('api/health', api_health),
    path('api/ready', api_ready),
    # Auth and profile
    path('api/token', ThrottledTokenObtainPairView.as_view()),
    path('api/token/refresh', TokenRefreshView.as_view()),
    path('api/me', MeView.as_view()),
    path('api/me/avatar', AvatarView.as_view()),
    path('api/me/password', PasswordChangeView.as_view()),
    path('api/me/preferences', PreferencesView.as_view()),
    # Organization
    path('api/organization', organization),
    path('api/organization/members', organization_members),
    path('api/organization/members/<int:profile_id>', organization_member),
    path('api/organization/invites', organization_invites),
    path('api/organization/invites/accept', OrgInviteAcceptView.as_view({'post': 'create'})),
    # Workflow engine callback and connectivity check
    path('api/webhook', workflow_webhook),
    path('api/integrations/test', integrations_test),
    # Reporting
    path('api/dashboard', dashboard),
    path('api/analytics', analytics_summary),
    path('api/analytics/funders', analytics_funders),
    # Signed document downloads and the change feed
    path('api/storage/<str:token>', storage_download, name='storage-download'),
    path('api/realtime', RealtimeStreamView.as_view()),
    path('api/', include(router.urls)),
]

if settings.DEBUG or os.getenv('SERVE_MEDIA', '0') == '1':
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
