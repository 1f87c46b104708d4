import uuid

from django.db import models


class WorkflowExecution(models.Model):
    """Ledger row for one request to the external workflow engine.

    Created as ``running`` by the dispatcher; only the engine's
    ``update_workflow`` callback moves it on. A row may stay running forever
    if the engine never calls back.
    """

    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('running', 'Running'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    )
    TERMINAL_STATUSES = ('completed', 'failed')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='workflow_executions')
    grant = models.ForeignKey(
        'grants.Grant', on_delete=models.CASCADE, null=True, blank=True, related_name='workflow_executions'
    )
    workflow_name = models.CharField(max_length=100)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='pending')
    webhook_url = models.CharField(max_length=300, blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    result = models.JSONField(null=True, blank=True)
    error = models.TextField(blank=True, default='')
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['org', 'grant'], name='workflow_org_grant_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.workflow_name} {self.id} ({self.status})'
