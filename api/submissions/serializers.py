from rest_framework import serializers

from .models import Submission, SubmissionChecklist


class ChecklistSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    grant_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = SubmissionChecklist
        fields = ('id', 'org_id', 'grant_id', 'items', 'completion_percentage', 'created_at', 'updated_at')
        read_only_fields = fields


class SubmissionSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    grant_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Submission
        fields = (
            'id',
            'org_id',
            'grant_id',
            'method',
            'status',
            'confirmation_number',
            'portal_url',
            'submitted_at',
            'notes',
            'metadata',
            'created_at',
        )
        read_only_fields = fields


class ManualSubmissionSerializer(serializers.Serializer):
    confirmation_number = serializers.CharField(max_length=200)
    submitted_at = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True)


class AutoSubmitSerializer(serializers.Serializer):
    portal_url = serializers.URLField(max_length=800)


class ItemToggleSerializer(serializers.Serializer):
    completed = serializers.BooleanField()
