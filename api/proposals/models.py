from django.db import models


class Proposal(models.Model):
    """Proposal drafted for a grant, usually inserted by the generate-proposal workflow."""

    org = models.ForeignKey('orgs.Organization', on_delete=models.CASCADE, related_name='proposals')
    grant = models.ForeignKey('grants.Grant', on_delete=models.CASCADE, related_name='proposals')
    title = models.CharField(max_length=500, blank=True, default='')
    status = models.CharField(max_length=32, blank=True, default='draft')
    quality_score = models.IntegerField(null=True, blank=True)
    # Written back by the review-proposal workflow
    quality_review = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at', '-id']

    def __str__(self) -> str:  # pragma: no cover
        return f'Proposal {self.pk} ({self.status})'


class ProposalSection(models.Model):
    """One chapter of a proposal.

    ``content``, ``header1``, ``header2`` and ``tabulation`` hold lists of
    ``{"chapter": str, "sort_order": int}`` blocks as produced by the engine.
    """

    proposal = models.ForeignKey(Proposal, on_delete=models.CASCADE, related_name='sections')
    title = models.CharField(max_length=500, blank=True, default='')
    content = models.JSONField(null=True, blank=True)
    header1 = models.JSONField(null=True, blank=True)
    header2 = models.JSONField(null=True, blank=True)
    tabulation = models.JSONField(null=True, blank=True)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['proposal_id', 'sort_order', 'id']
        indexes = [
            models.Index(fields=['proposal', 'sort_order'], name='proposal_section_order_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f'ProposalSection {self.proposal_id}:{self.sort_order} {self.title}'
