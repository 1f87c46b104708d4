from django.conf import settings
from django.db import models


class Grant(models.Model):
    """A funding opportunity tracked through the pipeline.

    ``stage`` is a label only: any stage may be set directly, there are no
    enforced transitions.
    """

    STAGE_CHOICES = (
        ('discovery', 'Discovery'),
        ('screening', 'Screening'),
        ('drafting', 'Drafting'),
        ('submission', 'Submission'),
        ('awarded', 'Awarded'),
        ('reporting', 'Reporting'),
        ('closed', 'Closed'),
    )
    ACTIVE_STAGES = ('discovery', 'screening', 'drafting', 'submission')

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='grants')
    title = models.CharField(max_length=500)
    funder_name = models.CharField(max_length=300, blank=True, default='')
    organization = models.CharField(max_length=300, blank=True, default='')
    description = models.TextField(blank=True, default='')
    amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    deadline = models.DateTimeField(null=True, blank=True)
    stage = models.CharField(max_length=16, choices=STAGE_CHOICES, default='discovery')
    source = models.CharField(max_length=100, blank=True, default='')
    source_id = models.CharField(max_length=200, blank=True, default='')
    source_url = models.URLField(max_length=800, blank=True, default='')
    categories = models.JSONField(null=True, blank=True)
    eligibility = models.JSONField(null=True, blank=True)
    screening_score = models.IntegerField(null=True, blank=True)
    screening_notes = models.TextField(blank=True, default='')
    concerns = models.JSONField(null=True, blank=True)
    recommendations = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['org', 'stage'], name='grants_org_stage_idx'),
            models.Index(fields=['org', 'deadline'], name='grants_org_deadline_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.title} ({self.stage})'


class ActivityLog(models.Model):
    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='activities')
    grant = models.ForeignKey(Grant, on_delete=models.CASCADE, null=True, blank=True, related_name='activities')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=200)
    details = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.action}@{self.grant_id}'


class Funder(models.Model):
    """Funder research produced by the analyze-funder workflow."""

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='funders')
    name = models.CharField(max_length=300)
    ein = models.CharField(max_length=32, blank=True, default='')
    giving_patterns = models.JSONField(null=True, blank=True)
    priorities = models.JSONField(null=True, blank=True)
    propublica_data = models.JSONField(null=True, blank=True)
    strategy_brief = models.TextField(blank=True, default='')
    submission_preferences = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return self.name
