from django.conf import settings
from django.db import models


class Document(models.Model):
    """Uploaded file metadata; the bytes live in default storage at ``file``.

    ``category`` is user-set, ``ai_category`` and ``extracted_text`` are
    written back by the categorize-document workflow.
    """

    EXTRACTION_CHOICES = (
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    )

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='documents')
    grant = models.ForeignKey('grants.Grant', on_delete=models.SET_NULL, null=True, blank=True, related_name='documents')
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    name = models.CharField(max_length=300)
    # storage key, e.g. "<user_id>/<millis>-<safe name>"
    file = models.CharField(max_length=500)
    file_type = models.CharField(max_length=200, blank=True, default='')
    file_size = models.BigIntegerField(default=0)
    category = models.CharField(max_length=100, blank=True, default='')
    ai_category = models.CharField(max_length=100, blank=True, default='')
    description = models.TextField(blank=True, default='')
    extracted_text = models.TextField(blank=True, default='')
    extraction_status = models.CharField(max_length=16, choices=EXTRACTION_CHOICES, default='pending')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return f'Document {self.pk} ({self.name})'
