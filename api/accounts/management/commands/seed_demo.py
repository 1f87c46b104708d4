from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from accounts.models import get_profile
from accounts.rls import service_role
from budgets.models import Budget, BudgetLineItem
from grants.models import Grant
from orgs.models import Organization
from proposals.models import Proposal, ProposalSection
from submissions.models import SubmissionChecklist, completion_percentage


class Command(BaseCommand):
    help = 'Seed a demo user, organization and a small grant pipeline for local development'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='demo12345', help='Password for the demo user.')

    def handle(self, *args, **options):
        User = get_user_model()
        demo, created = User.objects.get_or_create(username='demo', defaults={'email': 'demo@example.com'})
        # Always reset password for convenience in local dev
        demo.set_password(options['password'])
        demo.save()
        if created:
            self.stdout.write(self.style.SUCCESS("Created demo user 'demo'"))
        else:
            self.stdout.write('Demo user already existed; password reset.')

        profile = get_profile(demo)
        if profile.org_id is not None:
            self.stdout.write('Demo user already belongs to an organization; skipping pipeline seed.')
            return

        now = timezone.now()
        with transaction.atomic(), service_role():
            org = Organization.objects.create(
                name='Demo Community Trust',
                mission='Expanding access to after-school STEM programs.',
                sector='education',
            )
            profile.org = org
            profile.role = 'owner'
            profile.full_name = profile.full_name or 'Demo Owner'
            profile.save(update_fields=['org', 'role', 'full_name', 'updated_at'])

            grants = [
                Grant.objects.create(
                    org=org,
                    title='STEM Futures Fund',
                    funder_name='Bright Horizons Foundation',
                    amount=Decimal('50000'),
                    deadline=now + timedelta(days=5),
                    stage='drafting',
                ),
                Grant.objects.create(
                    org=org,
                    title='Community Learning Initiative',
                    funder_name='Civic Roots Fund',
                    amount=Decimal('120000'),
                    deadline=now + timedelta(days=30),
                    stage='screening',
                ),
                Grant.objects.create(
                    org=org,
                    title='Youth Robotics League',
                    funder_name='Bright Horizons Foundation',
                    amount=Decimal('15000'),
                    deadline=now - timedelta(days=10),
                    stage='awarded',
                ),
            ]

            proposal = Proposal.objects.create(org=org, grant=grants[0], title='STEM Futures Fund proposal')
            for index, (title, text) in enumerate(
                [
                    ('Executive Summary', 'We run free after-school STEM clubs in three neighborhoods.'),
                    ('Project Plan', 'Phase 1: recruit mentors. Phase 2: launch clubs.'),
                ]
            ):
                ProposalSection.objects.create(
                    proposal=proposal,
                    title=title,
                    content=[{'chapter': text, 'sort_order': 0}],
                    sort_order=index,
                )

            budget = Budget.objects.create(org=org, grant=grants[0], name='STEM Futures budget')
            for index, (category, description, amount) in enumerate(
                [
                    ('personnel', 'Program coordinator (0.5 FTE)', Decimal('30000')),
                    ('supplies', 'Robotics kits', Decimal('12000')),
                    ('travel', 'Regional competition travel', Decimal('8000')),
                ]
            ):
                BudgetLineItem.objects.create(
                    budget=budget, category=category, description=description, amount=amount, sort_order=index
                )
            budget.recompute_total()

            items = [
                {'title': 'Narrative', 'completed': True, 'completed_at': now.isoformat()},
                {'title': 'Budget', 'completed': False},
            ]
            SubmissionChecklist.objects.create(
                org=org, grant=grants[0], items=items, completion_percentage=completion_percentage(items)
            )

        self.stdout.write(self.style.SUCCESS(f"Seeded organization '{org.name}' with {len(grants)} grants."))
