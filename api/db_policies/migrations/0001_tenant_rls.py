from django.db import migrations

# tables carrying their own org_id column
ORG_TABLES = [
    'grants_grant',
    'grants_activitylog',
    'grants_funder',
    'proposals_proposal',
    'budgets_budget',
    'awards_award',
    'awards_report',
    'documents_document',
    'narratives_narrative',
    'submissions_submissionchecklist',
    'submissions_submission',
    'workflows_workflowexecution',
]

# child table -> (parent table, foreign key column)
CHILD_TABLES = {
    'proposals_proposalsection': ('proposals_proposal', 'proposal_id'),
    'budgets_budgetlineitem': ('budgets_budget', 'budget_id'),
}

HELPERS_SQL = r'''
DO $$ BEGIN
    IF NOT EXISTS (SELECT 1 FROM pg_namespace WHERE nspname = 'app') THEN
        EXECUTE 'CREATE SCHEMA app';
    END IF;
END $$;

CREATE OR REPLACE FUNCTION app.current_user_id() RETURNS integer AS $$
BEGIN
  RETURN NULLIF(current_setting('app.current_user_id', true), '')::integer;
END; $$ LANGUAGE plpgsql STABLE;

CREATE OR REPLACE FUNCTION app.current_org_id() RETURNS integer AS $$
BEGIN
  RETURN NULLIF(current_setting('app.current_org_id', true), '')::integer;
END; $$ LANGUAGE plpgsql STABLE;

CREATE OR REPLACE FUNCTION app.current_role() RETURNS text AS $$
BEGIN
  RETURN NULLIF(current_setting('app.current_role', true), '');
END; $$ LANGUAGE plpgsql STABLE;
'''


def org_policy_sql(table: str) -> str:
    return f'''
ALTER TABLE IF EXISTS {table} ENABLE ROW LEVEL SECURITY;
ALTER TABLE IF EXISTS {table} FORCE ROW LEVEL SECURITY;
DROP POLICY IF EXISTS {table}_tenant ON {table};
CREATE POLICY {table}_tenant ON {table}
    FOR ALL USING (
        org_id = app.current_org_id() OR app.current_role() = 'service'
    ) WITH CHECK (
        org_id = app.current_org_id() OR app.current_role() = 'service'
    );
'''


def child_policy_sql(table: str, parent: str, column: str) -> str:
    check = (
        f"app.current_role() = 'service' OR EXISTS ("
        f'SELECT 1 FROM {parent} p WHERE p.id = {table}.{column} AND p.org_id = app.current_org_id())'
    )
    return f'''
ALTER TABLE IF EXISTS {table} ENABLE ROW LEVEL SECURITY;
ALTER TABLE IF EXISTS {table} FORCE ROW LEVEL SECURITY;
DROP POLICY IF EXISTS {table}_tenant ON {table};
CREATE POLICY {table}_tenant ON {table}
    FOR ALL USING ({check}) WITH CHECK ({check});
'''


def forwards(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    with schema_editor.connection.cursor() as cur:
        cur.execute(HELPERS_SQL)
        for table in ORG_TABLES:
            cur.execute(org_policy_sql(table))
        for table, (parent, column) in CHILD_TABLES.items():
            cur.execute(child_policy_sql(table, parent, column))


def backwards(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    with schema_editor.connection.cursor() as cur:
        for table in [*ORG_TABLES, *CHILD_TABLES]:
            cur.execute(f'DROP POLICY IF EXISTS {table}_tenant ON {table};')
            cur.execute(f'ALTER TABLE IF EXISTS {table} NO FORCE ROW LEVEL SECURITY;')
            cur.execute(f'ALTER TABLE IF EXISTS {table} DISABLE ROW LEVEL SECURITY;')


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ('grants', '0001_initial'),
        ('proposals', '0001_initial'),
        ('budgets', '0001_initial'),
        ('awards', '0001_initial'),
        ('documents', '0001_initial'),
        ('narratives', '0001_initial'),
        ('submissions', '0001_initial'),
        ('workflows', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(forwards, backwards),
    ]
