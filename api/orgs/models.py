from django.conf import settings
from django.db import models
import secrets
from django.utils import timezone


class Organization(models.Model):
    """Tenant. Every grant-management row hangs off exactly one organization."""

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    mission = models.TextField(blank=True, default='')
    ein = models.CharField(max_length=32, blank=True, default='')
    address = models.TextField(blank=True, default='')
    phone = models.CharField(max_length=64, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    website = models.URLField(max_length=500, blank=True, default='')
    founding_year = models.PositiveIntegerField(null=True, blank=True)
    sector = models.CharField(max_length=128, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class OrgInvite(models.Model):
    ROLE_CHOICES = (
        ('admin', 'Admin'),
        ('member', 'Member'),
    )
    org = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='invites')
    email = models.EmailField()
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default='member')
    token = models.CharField(max_length=128, unique=True, editable=False)
    invited_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_org_invites')
    created_at = models.DateTimeField(auto_now_add=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    # Null means non-expiring; save() fills ORG_INVITE_TTL_DAYS when unset.
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['org', 'email'], name='orgs_orginv_org_id_email_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.token:
            self.token = secrets.token_urlsafe(32)
        if self.expires_at is None:
            ttl_days = int(getattr(settings, 'ORG_INVITE_TTL_DAYS', 14) or 0)
            if ttl_days > 0:
                self.expires_at = timezone.now() + timezone.timedelta(days=ttl_days)
        return super().save(*args, **kwargs)

    def is_active(self) -> bool:
        if self.accepted_at is not None or self.revoked_at is not None:
            return False
        if self.expires_at and timezone.now() >= self.expires_at:
            return False
        return True
