from django.db import transaction
from rest_framework.permissions import BasePermission, IsAuthenticated

from app.errors import STORE_ERRORS, store_error
from .models import get_profile
from .rls import set_rls_context


class HasOrganization(BasePermission):
    """Resolve the caller's tenant and attach it to the request.

    Sets ``request.profile`` and ``request.org`` and re-applies the RLS GUCs
    for the resolved organization. Pair with IsAuthenticated so anonymous
    callers get 401 before this check runs.
    """

    message = 'User profile or organization not found'

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not getattr(user, 'is_authenticated', False):
            return False
        profile = get_profile(user)
        request.profile = profile
        request.org = profile.org
        if profile.org_id is None:
            return False
        set_rls_context(user.id, profile.org_id, profile.role or 'member')
        return True


class IsOrgManager(BasePermission):
    """Owner/admin only. Must follow HasOrganization."""

    message = 'Insufficient permissions'

    def has_permission(self, request, view) -> bool:
        profile = getattr(request, 'profile', None)
        return bool(profile is not None and profile.can_manage)


class OrgScopedMixin:
    """ViewSet mixin restricting querysets to the caller's organization.

    Subclasses set ``queryset``; rows are filtered by ``org`` and new rows are
    stamped with it. Data-store failures during a write come back as
    ``{"error": <raw message>}`` with 400.
    """

    permission_classes = [IsAuthenticated, HasOrganization]

    def handle_exception(self, exc):
        if isinstance(exc, STORE_ERRORS):
            return store_error(exc)
        return super().handle_exception(exc)  # type: ignore[misc]

    def get_queryset(self):
        qs = super().get_queryset()  # type: ignore[misc]
        org = getattr(self.request, 'org', None)  # type: ignore[attr-defined]
        if org is None:
            return qs.none()
        return qs.filter(org=org)

    def perform_create(self, serializer):
        with transaction.atomic():
            serializer.save(org=self.request.org)  # type: ignore[attr-defined]

    def perform_update(self, serializer):
        with transaction.atomic():
            serializer.save()

    def perform_destroy(self, instance):
        with transaction.atomic():
            instance.delete()
