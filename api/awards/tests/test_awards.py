from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Profile
from awards.models import Award, Report
from grants.models import Grant
from orgs.models import Organization
from workflows.models import WorkflowExecution


@override_settings(WORKFLOW_ENGINE_URL='')
class AwardApiTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='x')
        self.org = Organization.objects.create(name='Acme')
        Profile.objects.filter(user=self.user).update(org=self.org, role='owner')
        self.grant = Grant.objects.create(org=self.org, title='STEM Fund', stage='submission')
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_create_marks_grant_awarded_and_dispatches(self):
        res = self.client.post('/api/awards/', {'grant_id': self.grant.id, 'amount': '25000.00'}, format='json')
        self.assertEqual(res.status_code, 201, res.content)
        self.grant.refresh_from_db()
        self.assertEqual(self.grant.stage, 'awarded')
        award = Award.objects.get()
        self.assertEqual(award.amount, Decimal('25000.00'))
        execution = WorkflowExecution.objects.get(workflow_name='record-award')
        self.assertEqual(execution.grant_id, self.grant.id)

    def test_award_kept_when_stage_update_fails(self):
        with patch('grants.models.Grant.save', side_effect=DatabaseError('locked')):
            with self.assertLogs('awards.views', level='WARNING'):
                res = self.client.post('/api/awards/', {'grant_id': self.grant.id}, format='json')
        self.assertEqual(res.status_code, 201, res.content)
        self.assertTrue(Award.objects.exists())
        self.grant.refresh_from_db()
        self.assertEqual(self.grant.stage, 'submission')

    def test_award_kept_when_record_award_ledger_fails(self):
        with patch('workflows.dispatch.WorkflowExecution.objects.create', side_effect=DatabaseError('ledger down')):
            with self.assertLogs('awards.views', level='WARNING'):
                res = self.client.post('/api/awards/', {'grant_id': self.grant.id}, format='json')
        self.assertEqual(res.status_code, 201, res.content)
        self.assertTrue(Award.objects.exists())
        self.grant.refresh_from_db()
        self.assertEqual(self.grant.stage, 'awarded')
        self.assertFalse(WorkflowExecution.objects.exists())

    def test_foreign_grant_rejected(self):
        foreign = Grant.objects.create(org=Organization.objects.create(name='Other'), title='Theirs')
        res = self.client.post('/api/awards/', {'grant_id': foreign.id}, format='json')
        self.assertEqual(res.status_code, 400)
        self.assertFalse(Award.objects.exists())

    def test_retrieve_includes_reports(self):
        award = Award.objects.create(org=self.org, grant=self.grant)
        Report.objects.create(org=self.org, award=award, grant=self.grant, title='Q1')
        data = self.client.get(f'/api/awards/{award.id}/').json()
        self.assertEqual([r['title'] for r in data['reports']], ['Q1'])
        self.assertEqual(data['grant']['title'], 'STEM Fund')


@override_settings(WORKFLOW_ENGINE_URL='')
class ReportApiTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='x')
        self.org = Organization.objects.create(name='Acme')
        Profile.objects.filter(user=self.user).update(org=self.org, role='owner')
        self.grant = Grant.objects.create(org=self.org, title='STEM Fund', stage='awarded')
        self.award = Award.objects.create(org=self.org, grant=self.grant)
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_create_starts_as_draft_with_award_grant(self):
        res = self.client.post(
            '/api/reports/',
            {'award_id': self.award.id, 'report_type': 'final', 'title': 'Final', 'status': 'submitted'},
            format='json',
        )
        self.assertEqual(res.status_code, 201, res.content)
        report = Report.objects.get()
        self.assertEqual(report.status, 'draft')
        self.assertEqual(report.grant_id, self.grant.id)
        self.assertIsNone(report.submitted_at)

    def test_submitting_stamps_submitted_at(self):
        report = Report.objects.create(org=self.org, award=self.award, grant=self.grant)
        res = self.client.patch(f'/api/reports/{report.id}/', {'status': 'submitted'}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        report.refresh_from_db()
        self.assertIsNotNone(report.submitted_at)
        first = report.submitted_at
        self.client.patch(f'/api/reports/{report.id}/', {'title': 'Edited', 'status': 'submitted'}, format='json')
        report.refresh_from_db()
        self.assertEqual(report.submitted_at, first)

    def test_filter_by_award(self):
        other_award = Award.objects.create(org=self.org, grant=self.grant)
        Report.objects.create(org=self.org, award=self.award, title='Mine')
        Report.objects.create(org=self.org, award=other_award, title='Other')
        data = self.client.get('/api/reports/', {'award_id': self.award.id}).json()
        self.assertEqual([r['title'] for r in data], ['Mine'])

    def test_generate_dispatches_with_metadata(self):
        report = Report.objects.create(org=self.org, award=self.award, grant=self.grant)
        res = self.client.post(f'/api/reports/{report.id}/generate/')
        self.assertEqual(res.status_code, 200, res.content)
        execution = WorkflowExecution.objects.get(id=res.json()['workflowId'])
        self.assertEqual(execution.workflow_name, 'report_generation')
        self.assertEqual(execution.metadata, {'award_id': self.award.id, 'report_id': report.id})
        self.assertEqual(execution.grant_id, self.grant.id)
