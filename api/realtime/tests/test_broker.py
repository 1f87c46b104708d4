import json

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Profile
from budgets.models import Budget, BudgetLineItem
from grants.models import Grant
from orgs.models import Organization
from proposals.models import Proposal, ProposalSection
from realtime import broker


class BrokerTests(SimpleTestCase):
    def tearDown(self):
        for sub in list(self.subs):
            broker.unsubscribe(sub)

    def setUp(self):
        self.subs = []

    def subscribe(self, org_id, tables=None, filters=None):
        sub = broker.subscribe(org_id, tables, filters)
        self.subs.append(sub)
        return sub

    def test_publish_reaches_only_same_org(self):
        mine = self.subscribe(1)
        other = self.subscribe(2)
        delivered = broker.publish(1, {'table': 'grants', 'event': 'INSERT', 'record': {'id': 5}})
        self.assertEqual(delivered, 1)
        self.assertEqual(mine.queue.get_nowait()['record'], {'id': 5})
        self.assertTrue(other.queue.empty())

    def test_table_and_field_filters(self):
        grants_only = self.subscribe(1, tables=['grants'])
        by_grant = self.subscribe(1, filters={'grant_id': '7'})
        broker.publish(1, {'table': 'proposals', 'event': 'UPDATE', 'record': {'id': 1, 'grant_id': 7}})
        broker.publish(1, {'table': 'grants', 'event': 'UPDATE', 'record': {'id': 3}})
        self.assertEqual(grants_only.queue.get_nowait()['table'], 'grants')
        self.assertTrue(grants_only.queue.empty())
        self.assertEqual(by_grant.queue.get_nowait()['table'], 'proposals')
        self.assertTrue(by_grant.queue.empty())

    def test_boolean_filter_matches_query_spelling(self):
        templates = self.subscribe(1, tables=['budgets'], filters={'is_template': 'true'})
        broker.publish(1, {'table': 'budgets', 'event': 'INSERT', 'record': {'id': 1, 'is_template': False}})
        broker.publish(1, {'table': 'budgets', 'event': 'INSERT', 'record': {'id': 2, 'is_template': True}})
        self.assertEqual(templates.queue.get_nowait()['record']['id'], 2)
        self.assertTrue(templates.queue.empty())

    @override_settings(REALTIME_QUEUE_SIZE=1)
    def test_full_queue_drops_event(self):
        sub = self.subscribe(1)
        broker.publish(1, {'table': 'grants', 'event': 'INSERT', 'record': {'id': 1}})
        with self.assertLogs('realtime.broker', level='WARNING'):
            delivered = broker.publish(1, {'table': 'grants', 'event': 'INSERT', 'record': {'id': 2}})
        self.assertEqual(delivered, 0)
        self.assertEqual(sub.queue.get_nowait()['record']['id'], 1)

    def test_unsubscribe(self):
        sub = self.subscribe(9)
        self.assertEqual(broker.subscriber_count(9), 1)
        broker.unsubscribe(sub)
        broker.unsubscribe(sub)
        self.assertEqual(broker.subscriber_count(9), 0)
        self.assertEqual(broker.publish(9, {'table': 'grants', 'event': 'INSERT', 'record': {}}), 0)

    def test_publish_without_org(self):
        self.assertEqual(broker.publish(None, {'table': 'grants'}), 0)


class SignalPublishTests(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name='Acme')
        self.sub = broker.subscribe(self.org.id)

    def tearDown(self):
        broker.unsubscribe(self.sub)

    def drain(self):
        events = []
        while not self.sub.queue.empty():
            events.append(self.sub.queue.get_nowait())
        return events

    def test_insert_update_delete_published_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            grant = Grant.objects.create(org=self.org, title='G')
        with self.captureOnCommitCallbacks(execute=True):
            grant.stage = 'screening'
            grant.save()
        grant_id = grant.id
        with self.captureOnCommitCallbacks(execute=True):
            grant.delete()
        events = [(e['table'], e['event']) for e in self.drain()]
        self.assertEqual(events, [('grants', 'INSERT'), ('grants', 'UPDATE'), ('grants', 'DELETE')])

    def test_nothing_published_before_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            grant = Grant.objects.create(org=self.org, title='G')
        self.assertTrue(self.sub.queue.empty())
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(grant.org_id, self.org.id)

    def test_record_is_json_safe(self):
        with self.captureOnCommitCallbacks(execute=True):
            Grant.objects.create(org=self.org, title='G', amount='10.50')
        event = self.drain()[0]
        json.dumps(event)
        self.assertEqual(event['record']['org_id'], self.org.id)
        self.assertEqual(event['id'], str(event['record']['id']))

    def test_child_rows_use_parent_org(self):
        grant = Grant.objects.create(org=self.org, title='G')
        proposal = Proposal.objects.create(org=self.org, grant=grant)
        budget = Budget.objects.create(org=self.org, name='B')
        self.drain()
        with self.captureOnCommitCallbacks(execute=True):
            ProposalSection.objects.create(proposal=proposal, title='S')
            BudgetLineItem.objects.create(budget=budget, category='other', description='x', amount=1)
        tables = [e['table'] for e in self.drain()]
        self.assertEqual(tables, ['proposal_sections', 'budget_line_items'])

    def test_other_org_not_delivered(self):
        other = Organization.objects.create(name='Other')
        with self.captureOnCommitCallbacks(execute=True):
            Grant.objects.create(org=other, title='G')
        self.assertEqual(self.drain(), [])


@override_settings(REALTIME_HEARTBEAT_SECONDS=0)
class RealtimeStreamViewTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='x')
        self.org = Organization.objects.create(name='Acme')
        Profile.objects.filter(user=self.user).update(org=self.org, role='member')
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_stream_connects_delivers_and_unsubscribes(self):
        res = self.client.get('/api/realtime', {'tables': 'grants', 'grant_id': '3'}, HTTP_ACCEPT='text/event-stream')
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res['Content-Type'], 'text/event-stream')
        chunks = iter(res.streaming_content)
        first = next(chunks).decode()
        self.assertTrue(first.startswith('event: connected\n'))
        self.assertEqual(broker.subscriber_count(self.org.id), 1)
        self.assertTrue(next(chunks).decode().startswith(': heartbeat'))
        broker.publish(self.org.id, {'table': 'grants', 'event': 'UPDATE', 'id': '3', 'record': {'id': 3, 'grant_id': 3}})
        change = next(chunks).decode()
        self.assertTrue(change.startswith('event: change\ndata: '))
        payload = json.loads(change.split('data: ', 1)[1])
        self.assertEqual(payload['event'], 'UPDATE')
        res.close()
        self.assertEqual(broker.subscriber_count(self.org.id), 0)

    def test_unknown_table_rejected(self):
        res = self.client.get('/api/realtime', {'tables': 'secrets'})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['error'], 'Unknown table: secrets')

    def test_requires_auth(self):
        self.assertEqual(APIClient().get('/api/realtime').status_code, 401)
