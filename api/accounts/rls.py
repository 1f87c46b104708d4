"""Postgres row-level-security session context.

Policies (see db_policies migrations) read three GUCs through helper
functions: app.current_user_id(), app.current_org_id(), app.current_role().
The 'service' role bypasses tenant filters and is reserved for workflow
callbacks. All helpers are no-ops on non-Postgres backends.
"""
from contextlib import contextmanager

from django.db import connection

SERVICE_ROLE = 'service'


def set_rls_context(user_id=None, org_id=None, role: str = 'user', *, local: bool = False) -> None:
    """Set the RLS GUCs; ``local=True`` scopes them to the current transaction."""
    if connection.vendor != 'postgresql':
        return
    with connection.cursor() as cur:
        cur.execute("SELECT set_config('app.current_user_id', %s, %s)", [str(user_id) if user_id else '', local])
        cur.execute("SELECT set_config('app.current_org_id', %s, %s)", [str(org_id) if org_id else '', local])
        cur.execute("SELECT set_config('app.current_role', %s, %s)", [role or 'user', local])


@contextmanager
def service_role():
    """Elevate the current transaction to the service role.

    Must run inside ``transaction.atomic()``; the setting reverts on commit or
    rollback.
    """
    set_rls_context(role=SERVICE_ROLE, local=True)
    yield
