import logging
import time

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from app.common.files import avatar_storage_path, matches_signature
from app.errors import STORE_ERRORS, store_error
from .models import get_profile
from .serializers import PasswordChangeSerializer, PreferencesSerializer, ProfileSerializer

logger = logging.getLogger(__name__)


class MeView(APIView):
    """Authenticated user's profile.

    GET: profile with tenant binding (org_id, role).
    PATCH: full_name / email. The auth user's email follows the profile email.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(ProfileSerializer(get_profile(request.user)).data)

    def patch(self, request):
        payload = request.data or {}
        allowed = {k: v for k, v in payload.items() if k in {'full_name', 'email'}}
        if not allowed:
            return Response({'error': 'no_changes'}, status=status.HTTP_400_BAD_REQUEST)

        email = allowed.get('email')
        if email is not None:
            email = str(email).strip().lower()
            if email and ('@' not in email or '.' not in email.split('@')[-1]):
                return Response({'error': 'invalid_email'}, status=400)
            allowed['email'] = email
        if 'full_name' in allowed:
            allowed['full_name'] = str(allowed['full_name'] or '').strip()

        profile = get_profile(request.user)
        user = request.user
        try:
            with transaction.atomic():
                for field, value in allowed.items():
                    setattr(profile, field, value)
                profile.save(update_fields=list(allowed.keys()) + ['updated_at'])
                if email is not None and email != user.email:
                    user.email = email
                    user.save(update_fields=['email'])
        except IntegrityError as exc:
            return store_error(exc)
        return Response(ProfileSerializer(profile).data)


class AvatarView(APIView):
    """POST multipart ``file``: png/jpeg/webp up to AVATAR_MAX_BYTES.

    Stored at ``avatars/<user_id>/avatar.<ext>`` (overwrites), URL cache-busted with ``?t=``.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        f = request.FILES.get('file')
        if not f or not f.name:
            return Response({'error': 'No file provided'}, status=400)
        content_type = (f.content_type or '').lower()
        if content_type not in settings.AVATAR_ALLOWED_TYPES:
            return Response({'error': 'Invalid file type. Only PNG, JPEG, and WebP are allowed.'}, status=400)
        if f.size > settings.AVATAR_MAX_BYTES:
            return Response(
                {'error': 'File too large. Maximum size is 2MB.', 'limit': settings.AVATAR_MAX_BYTES},
                status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
        head = f.read(16)
        f.seek(0)
        if not matches_signature(head, content_type):
            return Response({'error': 'mismatched_signature'}, status=400)

        path = avatar_storage_path(request.user.id, content_type, f.name)
        if default_storage.exists(path):
            default_storage.delete(path)
        saved = default_storage.save(path, f)
        avatar_url = f'{default_storage.url(saved)}?t={int(time.time() * 1000)}'

        profile = get_profile(request.user)
        profile.avatar_url = avatar_url
        try:
            profile.save(update_fields=['avatar_url', 'updated_at'])
        except STORE_ERRORS as exc:
            return store_error(exc)
        return Response({'success': True, 'url': avatar_url})


class PasswordChangeView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = PasswordChangeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = request.user
        if not user.check_password(ser.validated_data['current_password']):
            return Response({'error': 'Current password is incorrect'}, status=400)
        user.set_password(ser.validated_data['new_password'])
        user.save(update_fields=['password'])
        return Response({'success': True})


class PreferencesView(APIView):
    """PATCH merges the given keys into profile.preferences."""

    permission_classes = [IsAuthenticated]

    def patch(self, request):
        ser = PreferencesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        profile = get_profile(request.user)
        merged = {**(profile.preferences or {}), **ser.validated_data}
        profile.preferences = merged
        profile.save(update_fields=['preferences', 'updated_at'])
        return Response({'success': True, 'preferences': merged})


class ThrottledTokenObtainPairView(TokenObtainPairView):
    """JWT obtain pair view with scoped throttling to deter brute-force attempts."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'
