from rest_framework import serializers

from .models import ActivityLog, Funder, Grant


class GrantSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Grant
        fields = (
            'id',
            'org_id',
            'title',
            'funder_name',
            'organization',
            'description',
            'amount',
            'deadline',
            'stage',
            'source',
            'source_id',
            'source_url',
            'categories',
            'eligibility',
            'screening_score',
            'screening_notes',
            'concerns',
            'recommendations',
            'metadata',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'org_id', 'created_at', 'updated_at')


class GrantBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Grant
        fields = ('id', 'title', 'funder_name', 'deadline', 'amount', 'stage')
        read_only_fields = fields


class ActivityLogSerializer(serializers.ModelSerializer):
    grant_id = serializers.IntegerField(read_only=True, allow_null=True)
    user_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ActivityLog
        fields = ('id', 'grant_id', 'user_id', 'action', 'details', 'created_at')
        read_only_fields = fields


class FunderSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Funder
        fields = (
            'id',
            'org_id',
            'name',
            'ein',
            'giving_patterns',
            'priorities',
            'propublica_data',
            'strategy_brief',
            'submission_preferences',
            'metadata',
            'created_at',
            'updated_at',
        )
        read_only_fields = fields


class DiscoverSerializer(serializers.Serializer):
    query = serializers.CharField(max_length=500)


class AnalyzeFunderSerializer(serializers.Serializer):
    funder_name = serializers.CharField(max_length=300)
    ein = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
