from django.db import models


class Narrative(models.Model):
    """Reusable text block, independent of any grant."""

    CATEGORY_CHOICES = (
        ('mission', 'Mission'),
        ('impact', 'Impact'),
        ('methods', 'Methods'),
        ('evaluation', 'Evaluation'),
        ('sustainability', 'Sustainability'),
        ('capacity', 'Capacity'),
        ('budget_narrative', 'Budget narrative'),
        ('other', 'Other'),
    )

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='narratives')
    title = models.CharField(max_length=300)
    content = models.TextField()
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, default='other')
    tags = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return self.title
