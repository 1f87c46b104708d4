import math

from django.db import models


def completion_percentage(items) -> int:
    """Rounded share of completed items (half rounds up); 0 for an empty list."""
    items = items or []
    total = len(items)
    if not total:
        return 0
    done = sum(1 for it in items if isinstance(it, dict) and it.get('completed'))
    return int(math.floor(100 * done / total + 0.5))


class SubmissionChecklist(models.Model):
    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='checklists')
    grant = models.OneToOneField('grants.Grant', on_delete=models.CASCADE, related_name='checklist')
    # [{"label": str, "completed": bool, "completed_at": iso8601 | None, ...}]
    items = models.JSONField(default=list, blank=True)
    completion_percentage = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return f'Checklist for grant {self.grant_id} ({self.completion_percentage}%)'

    def refresh_percentage(self) -> int:
        self.completion_percentage = completion_percentage(self.items)
        return self.completion_percentage


class Submission(models.Model):
    METHOD_CHOICES = (
        ('auto', 'Automatic'),
        ('manual', 'Manual'),
    )

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='submissions')
    grant = models.ForeignKey('grants.Grant', on_delete=models.CASCADE, related_name='submissions')
    method = models.CharField(max_length=16, choices=METHOD_CHOICES)
    status = models.CharField(max_length=32, blank=True, default='submitted')
    confirmation_number = models.CharField(max_length=200, blank=True, default='')
    portal_url = models.URLField(max_length=800, blank=True, default='')
    submitted_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-submitted_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.method} submission {self.pk} ({self.status})'
