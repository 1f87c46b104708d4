from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Profile
from grants.models import Grant
from orgs.models import Organization
from proposals.models import Proposal, ProposalSection
from workflows.models import WorkflowExecution


def block(text, order=0):
    return [{'chapter': text, 'sort_order': order}]


@override_settings(WORKFLOW_ENGINE_URL='')
class ProposalApiTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='x')
        self.org = Organization.objects.create(name='Acme')
        self.other_org = Organization.objects.create(name='Other')
        Profile.objects.filter(user=self.user).update(org=self.org, role='member')
        self.grant = Grant.objects.create(org=self.org, title='STEM Fund')
        self.proposal = Proposal.objects.create(org=self.org, grant=self.grant, title='Draft')
        self.s1 = ProposalSection.objects.create(proposal=self.proposal, title='Summary', content=block('a'), sort_order=0)
        self.s2 = ProposalSection.objects.create(proposal=self.proposal, title='Plan', sort_order=1)
        self.s3 = ProposalSection.objects.create(proposal=self.proposal, title='Budget', sort_order=2)
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def url(self, suffix=''):
        return f'/api/proposals/{self.proposal.id}/{suffix}'

    def test_list_and_detail(self):
        Proposal.objects.create(org=self.other_org, grant=Grant.objects.create(org=self.other_org, title='X'))
        listed = self.client.get('/api/proposals/').json()
        self.assertEqual([p['id'] for p in listed], [self.proposal.id])
        detail = self.client.get(self.url()).json()
        self.assertEqual([s['title'] for s in detail['sections']], ['Summary', 'Plan', 'Budget'])
        self.assertEqual(detail['grant']['title'], 'STEM Fund')

    def test_proposals_are_not_created_directly(self):
        res = self.client.post('/api/proposals/', {'grant_id': self.grant.id}, format='json')
        self.assertEqual(res.status_code, 405)

    def test_generate_dispatches(self):
        res = self.client.post('/api/proposals/generate/', {'grant_id': self.grant.id}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        execution = WorkflowExecution.objects.get(id=res.json()['workflowId'])
        self.assertEqual(execution.workflow_name, 'generate-proposal')
        self.assertEqual(execution.grant_id, self.grant.id)

    def test_generate_rejects_foreign_grant(self):
        foreign = Grant.objects.create(org=self.other_org, title='Theirs')
        res = self.client.post('/api/proposals/generate/', {'grant_id': foreign.id}, format='json')
        self.assertEqual(res.status_code, 400)
        self.assertFalse(WorkflowExecution.objects.exists())

    def test_review_dispatches(self):
        res = self.client.post(self.url('review/'))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(WorkflowExecution.objects.get().workflow_name, 'review-proposal')

    def test_bulk_section_update(self):
        res = self.client.put(
            self.url('sections/'),
            {
                'title': 'Final title',
                'sections': [
                    {'id': self.s1.id, 'title': 'Executive Summary', 'content': block('new text')},
                    {'id': self.s2.id, 'title': 'Plan', 'header1': block('Phase 1')},
                ],
            },
            format='json',
        )
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual(res.json(), {'success': True})
        self.proposal.refresh_from_db()
        self.s1.refresh_from_db()
        self.s2.refresh_from_db()
        self.assertEqual(self.proposal.title, 'Final title')
        self.assertEqual(self.s1.title, 'Executive Summary')
        self.assertEqual(self.s1.content, block('new text'))
        self.assertEqual(self.s2.header1, block('Phase 1'))
        self.assertIsNone(self.s2.content)

    def test_bulk_update_keeps_title_when_omitted(self):
        self.client.put(self.url('sections/'), {'sections': [{'id': self.s1.id, 'title': 'S'}]}, format='json')
        self.proposal.refresh_from_db()
        self.assertEqual(self.proposal.title, 'Draft')

    def test_bulk_update_rejects_foreign_section(self):
        other = Proposal.objects.create(org=self.org, grant=self.grant)
        foreign = ProposalSection.objects.create(proposal=other, title='Other')
        res = self.client.put(
            self.url('sections/'),
            {'sections': [{'id': self.s1.id, 'title': 'Changed'}, {'id': foreign.id, 'title': 'Hijack'}]},
            format='json',
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()['error'], 'Section not found')
        self.s1.refresh_from_db()
        self.assertEqual(self.s1.title, 'Summary')

    def test_reorder(self):
        ids = [self.s3.id, self.s1.id, self.s2.id]
        res = self.client.post(self.url('sections/reorder/'), {'section_ids': ids}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual([s['id'] for s in res.json()], ids)
        self.assertEqual(ProposalSection.objects.get(id=self.s3.id).sort_order, 0)

    def test_reorder_requires_exact_id_set(self):
        res = self.client.post(self.url('sections/reorder/'), {'section_ids': [self.s1.id, self.s2.id]}, format='json')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['error'], 'Invalid section ids')
        res = self.client.post(
            self.url('sections/reorder/'), {'section_ids': [self.s1.id, self.s1.id, self.s2.id]}, format='json'
        )
        self.assertEqual(res.status_code, 400)

    def test_delete_cascades_sections(self):
        res = self.client.delete(self.url())
        self.assertEqual(res.status_code, 204)
        self.assertFalse(ProposalSection.objects.filter(proposal_id=self.proposal.id).exists())

    def test_foreign_proposal_hidden(self):
        foreign = Proposal.objects.create(org=self.other_org, grant=Grant.objects.create(org=self.other_org, title='X'))
        self.assertEqual(self.client.get(f'/api/proposals/{foreign.id}/').status_code, 404)
