from django.db import models


class Award(models.Model):
    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='awards')
    grant = models.ForeignKey('grants.Grant', on_delete=models.CASCADE, related_name='awards')
    amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    award_date = models.DateField(null=True, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    requirements = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return f'Award {self.pk} for grant {self.grant_id}'


class Report(models.Model):
    TYPE_CHOICES = (
        ('interim', 'Interim'),
        ('final', 'Final'),
    )
    STATUS_CHOICES = (
        ('draft', 'Draft'),
        ('submitted', 'Submitted'),
    )

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='reports')
    award = models.ForeignKey(Award, on_delete=models.CASCADE, related_name='reports')
    grant = models.ForeignKey('grants.Grant', on_delete=models.CASCADE, null=True, blank=True, related_name='reports')
    report_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='interim')
    title = models.CharField(max_length=300, blank=True, default='')
    content = models.JSONField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='draft')
    submitted_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['due_date', 'id']

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.report_type} report {self.pk} ({self.status})'
