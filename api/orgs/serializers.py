from rest_framework import serializers

from accounts.models import Profile
from accounts.serializers import UserBriefSerializer
from .models import Organization, OrgInvite


class MemberSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = Profile
        fields = ('id', 'user', 'full_name', 'email', 'avatar_url', 'role', 'created_at')
        read_only_fields = fields


class MemberRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Profile.ROLE_CHOICES)


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = (
            'id',
            'name',
            'description',
            'mission',
            'ein',
            'address',
            'phone',
            'email',
            'website',
            'founding_year',
            'sector',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'created_at', 'updated_at')


class OrgInviteSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrgInvite
        fields = (
            'id',
            'email',
            'role',
            'token',
            'created_at',
            'accepted_at',
            'revoked_at',
            'expires_at',
        )
        read_only_fields = ('id', 'token', 'created_at', 'accepted_at', 'revoked_at', 'expires_at')
