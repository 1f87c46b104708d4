from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import Profile
from orgs.models import Organization, OrgInvite


def bind(user, org, role):
    Profile.objects.filter(user=user).update(org=org, role=role)


class OrgInvitesTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username='owner', email='owner@example.com', password='x')
        self.member = User.objects.create_user(username='member', email='member@example.com', password='x')
        self.invitee = User.objects.create_user(username='invitee', email='invitee@example.com', password='x')
        self.other = User.objects.create_user(username='other', email='other@example.com', password='x')
        self.org = Organization.objects.create(name='Acme')
        bind(self.owner, self.org, 'owner')
        bind(self.member, self.org, 'member')
        self.client = APIClient()

    def auth(self, user):
        self.client.force_authenticate(user)

    def invite(self, email='invitee@example.com', role='member'):
        self.auth(self.owner)
        return self.client.post('/api/organization/invites', {'email': email, 'role': role}, format='json')

    def test_owner_can_invite_list_and_revoke(self):
        res = self.invite()
        self.assertEqual(res.status_code, 201, res.content)
        inv_id = res.data['id']
        self.assertTrue(res.data['token'])
        self.assertIn('invite=', res.data['acceptance_url'])
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Acme', mail.outbox[0].subject)
        res = self.client.get('/api/organization/invites')
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data), 1)
        res = self.client.delete('/api/organization/invites', {'id': inv_id}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        self.assertIsNotNone(OrgInvite.objects.get(id=inv_id).revoked_at)

    def test_member_cannot_invite(self):
        self.auth(self.member)
        res = self.client.post('/api/organization/invites', {'email': 'x@example.com'}, format='json')
        self.assertEqual(res.status_code, 403)

    def test_reinvite_reuses_active_invite(self):
        first = self.invite(role='member')
        second = self.invite(role='admin')
        self.assertEqual(first.data['id'], second.data['id'])
        self.assertEqual(OrgInvite.objects.get(id=first.data['id']).role, 'admin')

    def test_accept_invite_success(self):
        token = self.invite().data['token']
        self.auth(self.invitee)
        res = self.client.post('/api/organization/invites/accept', {'token': token}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        profile = Profile.objects.get(user=self.invitee)
        self.assertEqual(profile.org_id, self.org.id)
        self.assertEqual(profile.role, 'member')

    def test_accept_invite_email_mismatch(self):
        token = self.invite().data['token']
        self.auth(self.other)
        res = self.client.post('/api/organization/invites/accept', {'token': token}, format='json')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data.get('error'), 'email_mismatch')
        self.assertIsNone(Profile.objects.get(user=self.other).org_id)

    def test_cannot_accept_revoked_or_twice(self):
        res = self.invite()
        inv_id, token = res.data['id'], res.data['token']
        self.client.delete('/api/organization/invites', {'id': inv_id}, format='json')
        self.auth(self.invitee)
        res = self.client.post('/api/organization/invites/accept', {'token': token}, format='json')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data.get('error'), 'invite_revoked')
        token2 = self.invite().data['token']
        self.auth(self.invitee)
        res = self.client.post('/api/organization/invites/accept', {'token': token2}, format='json')
        self.assertEqual(res.status_code, 200)
        res = self.client.post('/api/organization/invites/accept', {'token': token2}, format='json')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data.get('error'), 'already_accepted')

    def test_expired_invite(self):
        res = self.invite(email='exp@example.com')
        inv = OrgInvite.objects.get(id=res.data['id'])
        inv.expires_at = timezone.now() - timezone.timedelta(days=1)
        inv.save(update_fields=['expires_at'])
        exp_user = get_user_model().objects.create_user(username='exp', email='exp@example.com', password='x')
        self.auth(exp_user)
        res = self.client.post('/api/organization/invites/accept', {'token': inv.token}, format='json')
        self.assertEqual(res.status_code, 400, res.content)
        self.assertEqual(res.data.get('error'), 'invite_expired')

    @override_settings(ORG_INVITES_PER_HOUR=2)
    def test_invite_rate_limit(self):
        self.assertEqual(self.invite(email='a@example.com').status_code, 201)
        self.assertEqual(self.invite(email='b@example.com').status_code, 201)
        res = self.invite(email='c@example.com')
        self.assertEqual(res.status_code, 429)
        self.assertEqual(res.data['error'], 'invite_rate_limited')


class OrganizationTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username='owner', email='owner@example.com', password='x')
        self.member = User.objects.create_user(username='member', email='member@example.com', password='x')
        self.loner = User.objects.create_user(username='loner', email='loner@example.com', password='x')
        self.org = Organization.objects.create(name='Acme', mission='Help')
        bind(self.owner, self.org, 'owner')
        bind(self.member, self.org, 'member')
        self.client = APIClient()

    def test_retrieve_and_patch(self):
        self.client.force_authenticate(self.owner)
        res = self.client.get('/api/organization')
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data['name'], 'Acme')
        res = self.client.patch('/api/organization', {'sector': 'education'}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        self.assertTrue(res.data['success'])
        self.assertEqual(res.data['organization']['sector'], 'education')

    def test_user_without_org_gets_403(self):
        self.client.force_authenticate(self.loner)
        res = self.client.get('/api/organization')
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()['error'], 'User profile or organization not found')

    def test_create_binds_caller_as_owner(self):
        self.client.force_authenticate(self.loner)
        res = self.client.post('/api/organization', {'name': 'Loner Fund'}, format='json')
        self.assertEqual(res.status_code, 201, res.content)
        profile = Profile.objects.get(user=self.loner)
        self.assertEqual(profile.org_id, res.data['id'])
        self.assertEqual(profile.role, 'owner')

    def test_members_and_role_change(self):
        self.client.force_authenticate(self.owner)
        res = self.client.get('/api/organization/members')
        self.assertEqual(res.status_code, 200)
        self.assertEqual({m['user']['username'] for m in res.data}, {'owner', 'member'})
        member_profile = Profile.objects.get(user=self.member)
        res = self.client.patch(f'/api/organization/members/{member_profile.id}', {'role': 'admin'}, format='json')
        self.assertEqual(res.status_code, 200, res.content)
        member_profile.refresh_from_db()
        self.assertEqual(member_profile.role, 'admin')

    def test_cannot_remove_self(self):
        self.client.force_authenticate(self.owner)
        own = Profile.objects.get(user=self.owner)
        res = self.client.delete(f'/api/organization/members/{own.id}')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data['error'], 'Cannot remove yourself')

    def test_remove_member_unbinds_profile(self):
        self.client.force_authenticate(self.owner)
        target = Profile.objects.get(user=self.member)
        res = self.client.delete(f'/api/organization/members/{target.id}')
        self.assertEqual(res.status_code, 200)
        target.refresh_from_db()
        self.assertIsNone(target.org_id)

    def test_member_cannot_manage_members(self):
        self.client.force_authenticate(self.member)
        own = Profile.objects.get(user=self.owner)
        res = self.client.patch(f'/api/organization/members/{own.id}', {'role': 'member'}, format='json')
        self.assertEqual(res.status_code, 403)
