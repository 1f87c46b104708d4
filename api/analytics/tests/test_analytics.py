from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import Profile
from analytics import services
from awards.models import Award
from grants.models import Grant
from orgs.models import Organization
from submissions.models import Submission


class PercentTests(SimpleTestCase):
    def test_rounds_half_up(self):
        self.assertEqual(services.percent(1, 2), 50)
        self.assertEqual(services.percent(1, 3), 33)
        self.assertEqual(services.percent(2, 3), 67)
        self.assertEqual(services.percent(1, 8), 13)

    def test_zero_whole(self):
        self.assertEqual(services.percent(0, 0), 0)
        self.assertEqual(services.percent(3, 0), 0)


class AnalyticsTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='x')
        self.org = Organization.objects.create(name='Acme')
        Profile.objects.filter(user=self.user).update(org=self.org, role='member')
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def _grant(self, title, funder, stage, amount):
        return Grant.objects.create(org=self.org, title=title, funder_name=funder, stage=stage, amount=Decimal(amount))

    def test_empty_org(self):
        data = self.client.get('/api/analytics').json()
        self.assertEqual(data['winRate'], 0)
        self.assertEqual(data['totalSubmissions'], 0)
        self.assertEqual(data['avgTimeToSubmission'], 0)
        self.assertEqual(self.client.get('/api/analytics/funders').json(), [])

    def test_summary_and_funders(self):
        a = self._grant('A', 'Bright', 'awarded', '1000')
        b = self._grant('B', 'Bright', 'submission', '2000')
        c = self._grant('C', '', 'drafting', '500')
        self._grant('D', 'Civic', 'closed', '9999')
        now = timezone.now()
        for grant in (a, b, c):
            Submission.objects.create(org=self.org, grant=grant, method='manual', status='completed', submitted_at=now)
        Award.objects.create(org=self.org, grant=a, amount=Decimal('750'))

        data = self.client.get('/api/analytics').json()
        self.assertEqual(data['winRate'], 33)
        self.assertEqual(data['totalSubmissions'], 3)
        self.assertEqual(data['totalAwards'], 1)
        self.assertEqual(Decimal(str(data['pipelineValue'])), Decimal('2500'))
        self.assertEqual(Decimal(str(data['totalAwardAmount'])), Decimal('750'))

        funders = {row['funderName']: row for row in self.client.get('/api/analytics/funders').json()}
        self.assertEqual(funders['Bright']['awards'], 1)
        self.assertEqual(funders['Bright']['submissions'], 2)
        self.assertEqual(funders['Bright']['successRate'], 50)
        self.assertEqual(funders['Unknown']['successRate'], 0)

    def test_avg_days_uses_first_submission(self):
        grant = self._grant('A', 'Bright', 'submission', '1')
        Grant.objects.filter(pk=grant.pk).update(created_at=timezone.now() - timedelta(days=10))
        now = timezone.now()
        Submission.objects.create(org=self.org, grant=grant, method='manual', submitted_at=now - timedelta(days=6))
        Submission.objects.create(org=self.org, grant=grant, method='manual', submitted_at=now)
        self.assertEqual(services.avg_days_to_submission(self.org), 4)

    def test_backdated_submission_truncates_toward_zero(self):
        grant = self._grant('A', 'Bright', 'submission', '1')
        created = Grant.objects.values_list('created_at', flat=True).get(pk=grant.pk)
        Submission.objects.create(org=self.org, grant=grant, method='manual', submitted_at=created - timedelta(hours=36))
        self.assertEqual(services.avg_days_to_submission(self.org), -1)

    def test_scoped_to_org(self):
        other = Organization.objects.create(name='Other')
        g = Grant.objects.create(org=other, title='X', stage='drafting', amount=Decimal('100'))
        Submission.objects.create(org=other, grant=g, method='manual')
        data = self.client.get('/api/analytics').json()
        self.assertEqual(data['totalSubmissions'], 0)
        self.assertEqual(data['pipelineValue'], 0)
