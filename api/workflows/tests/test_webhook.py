import json

from django.test import TestCase, override_settings
from django.utils import timezone

from awards.models import Award, Report
from budgets.models import Budget
from grants.models import ActivityLog, Funder, Grant
from orgs.models import Organization
from proposals.models import Proposal, ProposalSection
from submissions.models import Submission, SubmissionChecklist
from workflows.models import WorkflowExecution

SECRET = 'hook-secret'


@override_settings(WORKFLOW_WEBHOOK_SECRET=SECRET)
class WorkflowWebhookTests(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name='Acme')
        self.grant = Grant.objects.create(org=self.org, title='STEM Fund')

    def post(self, body, secret=SECRET):
        headers = {'HTTP_X_WEBHOOK_SECRET': secret} if secret is not None else {}
        raw = body if isinstance(body, str) else json.dumps(body)
        return self.client.post('/api/webhook', raw, content_type='application/json', **headers)

    def test_unknown_action_writes_nothing(self):
        models = (Grant, ActivityLog, Proposal, ProposalSection, SubmissionChecklist, Submission, WorkflowExecution)
        before = {m: m.objects.count() for m in models}
        res = self.post({'action': 'bogus', 'data': {'id': self.grant.id, 'stage': 'closed'}})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json(), {'error': 'Unknown action: bogus'})
        self.grant.refresh_from_db()
        self.assertEqual(self.grant.stage, 'discovery')
        self.assertEqual({m: m.objects.count() for m in models}, before)

    def test_invalid_json(self):
        res = self.post('{not json')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['error'], 'Invalid JSON')

    def test_wrong_secret_rejected(self):
        res = self.post({'action': 'update_grant', 'data': {'id': self.grant.id, 'stage': 'closed'}}, secret='nope')
        self.assertEqual(res.status_code, 401)
        self.grant.refresh_from_db()
        self.assertEqual(self.grant.stage, 'discovery')

    @override_settings(WORKFLOW_WEBHOOK_SECRET='', DEBUG=False)
    def test_unsigned_callbacks_rejected_outside_debug(self):
        res = self.post({'action': 'update_grant', 'data': {'id': self.grant.id}}, secret=None)
        self.assertEqual(res.status_code, 401)

    @override_settings(WORKFLOW_WEBHOOK_SECRET='', DEBUG=True)
    def test_unsigned_callbacks_accepted_in_debug(self):
        res = self.post({'action': 'update_grant', 'data': {'id': self.grant.id, 'stage': 'screening'}}, secret=None)
        self.assertEqual(res.status_code, 200)

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get('/api/webhook').status_code, 405)

    def test_update_grant(self):
        res = self.post({'action': 'update_grant', 'data': {'id': self.grant.id, 'screening_score': 82, 'stage': 'screening'}})
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual(res.json(), {'success': True})
        self.grant.refresh_from_db()
        self.assertEqual(self.grant.screening_score, 82)
        self.assertEqual(self.grant.stage, 'screening')

    def test_update_missing_row_is_not_an_error(self):
        res = self.post({'action': 'update_grant', 'data': {'id': 999999, 'stage': 'closed'}})
        self.assertEqual(res.status_code, 200)

    def test_insert_checklist_computes_percentage(self):
        items = [{'title': 'Narrative', 'completed': True}, {'title': 'Budget', 'completed': False}]
        res = self.post({'action': 'insert_checklist', 'data': {'grant_id': self.grant.id, 'items': items}})
        self.assertEqual(res.status_code, 200, res.content)
        checklist = SubmissionChecklist.objects.get(grant=self.grant)
        self.assertEqual(checklist.completion_percentage, 50)
        self.assertEqual(checklist.org_id, self.org.id)

    def test_insert_checklist_replaces_existing(self):
        SubmissionChecklist.objects.create(org=self.org, grant=self.grant, items=[{'title': 'Old'}])
        items = [{'title': 'A', 'completed': True}, {'title': 'B', 'completed': True}, {'title': 'C'}]
        self.post({'action': 'insert_checklist', 'data': {'grant_id': self.grant.id, 'items': items}})
        checklist = SubmissionChecklist.objects.get(grant=self.grant)
        self.assertEqual(len(checklist.items), 3)
        self.assertEqual(checklist.completion_percentage, 67)

    def test_create_proposal_with_sections(self):
        res = self.post(
            {
                'action': 'create_proposal',
                'data': {
                    'proposal': {'org_id': self.org.id, 'grant_id': self.grant.id, 'title': 'Draft'},
                    'sections': [
                        {'title': 'Summary', 'content': [{'chapter': 'We teach', 'sort_order': 0}], 'sort_order': 0},
                        {'title': 'Plan', 'sort_order': 1},
                    ],
                },
            }
        )
        self.assertEqual(res.status_code, 200, res.content)
        proposal = Proposal.objects.get(grant=self.grant)
        self.assertEqual(list(proposal.sections.order_by('sort_order').values_list('title', flat=True)), ['Summary', 'Plan'])

    def test_create_proposal_is_atomic(self):
        with self.assertLogs('workflows.webhooks', level='ERROR'):
            res = self.post(
                {
                    'action': 'create_proposal',
                    'data': {
                        'proposal': {'org_id': self.org.id, 'grant_id': self.grant.id, 'title': 'Draft'},
                        'sections': [{'title': 'Summary', 'no_such_column': 1}],
                    },
                }
            )
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {'error': 'Internal server error'})
        self.assertFalse(Proposal.objects.exists())
        self.assertFalse(ProposalSection.objects.exists())

    def test_update_workflow_terminal_status_stamps_completed_at(self):
        execution = WorkflowExecution.objects.create(org=self.org, grant=self.grant, workflow_name='screen', status='running')
        res = self.post(
            {'action': 'update_workflow', 'data': {'id': str(execution.id), 'status': 'completed', 'result': {'score': 90}}}
        )
        self.assertEqual(res.status_code, 200, res.content)
        execution.refresh_from_db()
        self.assertEqual(execution.status, 'completed')
        self.assertEqual(execution.result, {'score': 90})
        self.assertIsNotNone(execution.completed_at)

    def test_update_workflow_non_terminal_leaves_completed_at(self):
        execution = WorkflowExecution.objects.create(org=self.org, workflow_name='screen', status='pending')
        self.post({'action': 'update_workflow', 'data': {'id': str(execution.id), 'status': 'running'}})
        execution.refresh_from_db()
        self.assertIsNone(execution.completed_at)

    def test_log_activity_and_insert_grants(self):
        self.post({'action': 'log_activity', 'data': {'org_id': self.org.id, 'grant_id': self.grant.id, 'action': 'screened'}})
        self.post(
            {
                'action': 'insert_grants',
                'data': {'grants': [{'org_id': self.org.id, 'title': 'Found 1'}, {'org_id': self.org.id, 'title': 'Found 2'}]},
            }
        )
        self.assertTrue(ActivityLog.objects.filter(action='screened', grant=self.grant).exists())
        self.assertEqual(Grant.objects.filter(title__startswith='Found').count(), 2)

    def test_submission_complete_closes_workflow(self):
        execution = WorkflowExecution.objects.create(org=self.org, grant=self.grant, workflow_name='auto-submit', status='running')
        res = self.post(
            {
                'action': 'submission_complete',
                'data': {
                    'grant_id': self.grant.id,
                    'confirmation_number': 'CONF-1',
                    'status': 'completed',
                    'workflow_id': str(execution.id),
                },
            }
        )
        self.assertEqual(res.status_code, 200, res.content)
        submission = Submission.objects.get(grant=self.grant)
        self.assertEqual(submission.method, 'auto')
        self.assertEqual(submission.org_id, self.org.id)
        self.assertLessEqual(submission.submitted_at, timezone.now())
        execution.refresh_from_db()
        self.assertEqual(execution.status, 'completed')

    def test_update_checklist_recomputes_percentage(self):
        checklist = SubmissionChecklist.objects.create(org=self.org, grant=self.grant, items=[{'title': 'A'}])
        items = [{'title': 'A', 'completed': True}, {'title': 'B', 'completed': True}, {'title': 'C'}, {'title': 'D'}]
        res = self.post({'action': 'update_checklist', 'data': {'id': checklist.id, 'items': items}})
        self.assertEqual(res.status_code, 200, res.content)
        checklist.refresh_from_db()
        self.assertEqual(checklist.completion_percentage, 50)

    def test_update_budget_narrative(self):
        budget = Budget.objects.create(org=self.org, grant=self.grant, name='FY26')
        self.post({'action': 'update_budget', 'data': {'id': budget.id, 'narrative': 'Staff time dominates.'}})
        budget.refresh_from_db()
        self.assertEqual(budget.narrative, 'Staff time dominates.')

    def test_insert_funder(self):
        res = self.post({'action': 'insert_funder', 'data': {'funder': {'org_id': self.org.id, 'name': 'Ford', 'ein': '13-1684331'}}})
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual(Funder.objects.get(org=self.org).ein, '13-1684331')

    def test_insert_reports_calendar(self):
        award = Award.objects.create(org=self.org, grant=self.grant)
        rows = [
            {'org_id': self.org.id, 'award_id': award.id, 'report_type': 'interim', 'due_date': '2027-01-31'},
            {'org_id': self.org.id, 'award_id': award.id, 'report_type': 'final', 'due_date': '2027-06-30'},
        ]
        res = self.post({'action': 'insert_reports', 'data': {'reports': rows}})
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual(Report.objects.filter(award=award, status='draft').count(), 2)

    def test_unknown_column_rolls_back_and_returns_500(self):
        rows = [{'org_id': self.org.id, 'title': 'Good'}, {'org_id': self.org.id, 'bogus': 1}]
        with self.assertLogs('workflows.webhooks', level='ERROR'):
            res = self.post({'action': 'insert_grants', 'data': {'grants': rows}})
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {'error': 'Internal server error'})
        self.assertFalse(Grant.objects.filter(title='Good').exists())
