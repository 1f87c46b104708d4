from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Profile


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = get_user_model()
        fields = ('id', 'username', 'email')


class ProfileSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)
    org_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Profile
        fields = (
            'id',
            'user',
            'org_id',
            'role',
            'full_name',
            'email',
            'avatar_url',
            'preferences',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'org_id', 'role', 'avatar_url', 'preferences', 'created_at', 'updated_at')


class PreferencesSerializer(serializers.Serializer):
    theme = serializers.ChoiceField(choices=('light', 'dark', 'system'), required=False)
    timezone = serializers.CharField(max_length=64, required=False)
    date_format = serializers.ChoiceField(choices=('MM/DD/YYYY', 'DD/MM/YYYY', 'YYYY-MM-DD'), required=False)


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField()
    new_password = serializers.CharField(min_length=8)


class OrgRelatedField(serializers.PrimaryKeyRelatedField):
    """Primary-key relation limited to rows of the requesting user's organization."""

    def get_queryset(self):
        qs = super().get_queryset()
        request = self.context.get('request')
        org = getattr(request, 'org', None)
        if org is None:
            return qs.none()
        return qs.filter(org=org)
