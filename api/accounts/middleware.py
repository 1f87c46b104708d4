import logging

from django.db import DatabaseError

from .rls import set_rls_context

logger = logging.getLogger(__name__)


class RLSSessionMiddleware:
    """
    Sets Postgres session variables for RLS per request from the session user.
    - current_user_id
    - current_org_id (the user's profile organization)
    - current_role (profile role, 'user' when anonymous or org-less)
    Token-authenticated API requests are re-scoped by accounts.permissions.HasOrganization
    once DRF has resolved the user. Safe no-op for non-Postgres backends.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        user_id = getattr(user, 'id', None) if getattr(user, 'is_authenticated', False) else None
        org_id = None
        role = 'user'
        if user_id:
            profile = getattr(user, 'profile', None)
            if profile is not None and profile.org_id:
                org_id = profile.org_id
                role = profile.role or 'member'
        try:
            set_rls_context(user_id, org_id, role)
        except DatabaseError as exc:
            # Avoid breaking requests if DB is not ready
            logger.warning('RLS context not set: %s', exc)
        return self.get_response(request)
