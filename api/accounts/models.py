from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver


class Profile(models.Model):
    """Per-user tenant binding: a user belongs to at most one organization."""

    ROLE_CHOICES = (
        ('owner', 'Owner'),
        ('admin', 'Admin'),
        ('member', 'Member'),
    )
    MANAGER_ROLES = ('owner', 'admin')

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')
    org = models.ForeignKey(
        'orgs.Organization', on_delete=models.SET_NULL, null=True, blank=True, related_name='members'
    )
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, null=True, blank=True)
    full_name = models.CharField(max_length=200, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    avatar_url = models.CharField(max_length=500, blank=True, default='')
    # {"theme": "light|dark|system", "timezone": str, "date_format": str}
    preferences = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return f'{self.user_id}@{self.org_id}:{self.role}'

    @property
    def can_manage(self) -> bool:
        return self.role in self.MANAGER_ROLES


def get_profile(user) -> Profile:
    """Return the user's profile, creating an org-less one on first access."""
    profile, _ = Profile.objects.get_or_create(user=user, defaults={'email': user.email or ''})
    return profile


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def _ensure_profile(sender, instance, created: bool, **kwargs):
    if created and not kwargs.get('raw'):
        Profile.objects.get_or_create(user=instance, defaults={'email': instance.email or ''})
