import logging
from typing import Any

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import Profile, get_profile
from accounts.permissions import HasOrganization, IsOrgManager
from app.common.keys import t
from app.errors import STORE_ERRORS, store_error
from .models import Organization, OrgInvite
from .serializers import MemberRoleSerializer, MemberSerializer, OrganizationSerializer, OrgInviteSerializer

logger = logging.getLogger(__name__)


class OrganizationViewSet(viewsets.ViewSet):
    """The caller's organization (singular: a user belongs to at most one).

    Routed by hand in app.urls:
      /api/organization                      GET retrieve, PATCH partial_update, POST create
      /api/organization/members              GET members
      /api/organization/members/<profile_id> PATCH/DELETE member
      /api/organization/invites              GET/POST/DELETE invites
    """

    def get_permissions(self):
        if self.action == 'create':
            return [IsAuthenticated()]
        perms = [IsAuthenticated(), HasOrganization()]
        if self.action == 'member' or (self.action == 'invites' and self.request.method != 'GET'):
            perms.append(IsOrgManager())
        return perms

    def retrieve(self, request):
        return Response(OrganizationSerializer(request.org).data)

    def create(self, request):
        """Create an organization and bind the caller as its owner."""
        profile = get_profile(request.user)
        if profile.org_id is not None:
            return Response({'error': 'already_in_organization'}, status=400)
        ser = OrganizationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        with transaction.atomic():
            org = ser.save()
            profile.org = org
            profile.role = 'owner'
            profile.save(update_fields=['org', 'role', 'updated_at'])
        return Response(OrganizationSerializer(org).data, status=201)

    def partial_update(self, request):
        ser = OrganizationSerializer(request.org, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        try:
            ser.save()
        except STORE_ERRORS as exc:
            return store_error(exc)
        return Response({'success': True, 'organization': ser.data})

    def members(self, request):
        qs = Profile.objects.filter(org=request.org).select_related('user').order_by('created_at', 'id')
        return Response(MemberSerializer(qs, many=True).data)

    def member(self, request, profile_id: int):
        try:
            target = Profile.objects.get(id=profile_id, org=request.org)
        except Profile.DoesNotExist:
            return Response({'error': 'not_found'}, status=404)
        if request.method == 'DELETE':
            if target.user_id == request.user.id:
                return Response({'error': 'Cannot remove yourself'}, status=400)
            target.org = None
            target.role = None
            target.save(update_fields=['org', 'role', 'updated_at'])
            return Response({'success': True})
        ser = MemberRoleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        target.role = ser.validated_data['role']
        target.save(update_fields=['role', 'updated_at'])
        return Response({'success': True, 'member': MemberSerializer(target).data})

    def invites(self, request):
        org = request.org
        if request.method == 'GET':
            qs = OrgInvite.objects.filter(org=org).order_by('-created_at')
            return Response(OrgInviteSerializer(qs, many=True).data)
        if request.method == 'DELETE':
            return self._revoke_invite(request, org)
        email = ((request.data or {}).get('email') or '').strip().lower()
        role = (request.data or {}).get('role') or 'member'
        if not email:
            return Response({'error': 'email_required'}, status=400)
        if role not in dict(OrgInvite.ROLE_CHOICES):
            return Response({'error': 'invalid_role'}, status=400)
        max_per_hour = int(getattr(settings, 'ORG_INVITES_PER_HOUR', 20) or 0)
        if max_per_hour > 0:
            since = timezone.now() - timezone.timedelta(hours=1)
            if OrgInvite.objects.filter(org=org, created_at__gte=since).count() >= max_per_hour:
                return Response({'error': 'invite_rate_limited', 'retry_after_seconds': 3600}, status=429)
        inv = OrgInvite.objects.filter(org=org, email=email, accepted_at__isnull=True, revoked_at__isnull=True).first()
        if inv is not None and not inv.is_active():
            inv = None
        if inv is not None:
            if inv.role != role:
                inv.role = role
                inv.save(update_fields=['role'])
        else:
            inv = OrgInvite.objects.create(org=org, email=email, role=role, invited_by=request.user)
        accept_url = self._acceptance_url(request, inv)
        try:
            send_mail(
                subject=t('invites.email.subject', org=org.name),
                message=t('invites.email.body', org=org.name, role=role, url=accept_url),
                from_email=getattr(settings, 'DEFAULT_FROM_EMAIL', None),
                recipient_list=[email],
                fail_silently=False,
            )
        except Exception as exc:  # noqa: BLE001 - any mail backend failure
            logger.warning('invite email to %s failed: %s', email, exc)
        data = OrgInviteSerializer(inv).data
        data['acceptance_url'] = accept_url
        return Response(data, status=201)

    def _revoke_invite(self, request, org: Organization):
        invite_id = (request.data or {}).get('id')
        if not invite_id:
            return Response({'error': 'id_required'}, status=400)
        try:
            inv = OrgInvite.objects.get(id=int(invite_id), org=org)
        except (OrgInvite.DoesNotExist, ValueError, TypeError):
            return Response({'error': 'not_found'}, status=404)
        if inv.accepted_at:
            return Response({'error': 'already_accepted'}, status=400)
        if inv.revoked_at:
            return Response({'error': 'already_revoked'}, status=400)
        inv.revoked_at = timezone.now()
        inv.save(update_fields=['revoked_at'])
        return Response({'ok': True})

    @staticmethod
    def _acceptance_url(request, inv: OrgInvite) -> str:
        base = getattr(settings, 'FRONTEND_INVITE_URL_BASE', None) or request.build_absolute_uri('/app')
        sep = '&' if '?' in base else '?'
        return f'{base}{sep}invite={inv.token}'


class OrgInviteAcceptView(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def create(self, request, *args: Any, **kwargs: Any):
        token = (request.data or {}).get('token')
        if not token:
            return Response({'error': 'token_required'}, status=400)
        try:
            inv = OrgInvite.objects.select_related('org').get(token=token)
        except OrgInvite.DoesNotExist:
            return Response({'error': 'invalid_token'}, status=404)
        if inv.revoked_at:
            return Response({'error': 'invite_revoked'}, status=400)
        if inv.accepted_at:
            return Response({'error': 'already_accepted'}, status=400)
        if not inv.is_active():
            return Response({'error': 'invite_expired'}, status=400)
        if (request.user.email or '').strip().lower() != (inv.email or '').strip().lower():
            return Response({'error': 'email_mismatch', 'expected': inv.email, 'actual': request.user.email}, status=400)
        profile = get_profile(request.user)
        if profile.org_id and profile.org_id != inv.org_id and profile.role == 'owner':
            return Response({'error': 'owner_cannot_switch_organization'}, status=status.HTTP_409_CONFLICT)
        with transaction.atomic():
            profile.org = inv.org
            profile.role = inv.role
            profile.save(update_fields=['org', 'role', 'updated_at'])
            inv.accepted_at = timezone.now()
            inv.save(update_fields=['accepted_at'])
        return Response({'ok': True, 'org_id': inv.org_id})
