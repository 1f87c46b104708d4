from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Profile

PNG = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


class AvatarTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='x')
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_upload_sets_cache_busted_url(self):
        f = SimpleUploadedFile('me.png', PNG, content_type='image/png')
        res = self.client.post('/api/me/avatar', {'file': f}, format='multipart')
        self.assertEqual(res.status_code, 200, res.content)
        url = res.json()['url']
        self.assertIn(f'avatars/{self.user.id}/avatar', url)
        self.assertIn('?t=', url)
        self.assertEqual(Profile.objects.get(user=self.user).avatar_url, url)

    def test_missing_file(self):
        res = self.client.post('/api/me/avatar', {}, format='multipart')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['error'], 'No file provided')

    def test_rejects_disallowed_type(self):
        f = SimpleUploadedFile('me.gif', b'GIF89a' + b'\x00' * 10, content_type='image/gif')
        res = self.client.post('/api/me/avatar', {'file': f}, format='multipart')
        self.assertEqual(res.status_code, 400)
        self.assertIn('Invalid file type', res.json()['error'])

    @override_settings(AVATAR_MAX_BYTES=32)
    def test_rejects_oversized_file(self):
        f = SimpleUploadedFile('me.png', PNG, content_type='image/png')
        res = self.client.post('/api/me/avatar', {'file': f}, format='multipart')
        self.assertEqual(res.status_code, 413)

    def test_rejects_mismatched_signature(self):
        f = SimpleUploadedFile('me.png', b'not really a png', content_type='image/png')
        res = self.client.post('/api/me/avatar', {'file': f}, format='multipart')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['error'], 'mismatched_signature')


class PasswordAndPreferencesTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='bob', password='old-password')
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_password_change_requires_current_password(self):
        res = self.client.post(
            '/api/me/password', {'current_password': 'wrong', 'new_password': 'new-password-1'}, format='json'
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()['error'], 'Current password is incorrect')

    def test_password_change(self):
        res = self.client.post(
            '/api/me/password', {'current_password': 'old-password', 'new_password': 'new-password-1'}, format='json'
        )
        self.assertEqual(res.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('new-password-1'))

    def test_preferences_merge(self):
        self.client.patch('/api/me/preferences', {'theme': 'dark'}, format='json')
        res = self.client.patch('/api/me/preferences', {'timezone': 'Europe/Copenhagen'}, format='json')
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()['preferences'], {'theme': 'dark', 'timezone': 'Europe/Copenhagen'})
        self.assertEqual(Profile.objects.get(user=self.user).preferences['theme'], 'dark')

    def test_preferences_reject_unknown_theme(self):
        res = self.client.patch('/api/me/preferences', {'theme': 'neon'}, format='json')
        self.assertEqual(res.status_code, 400)
