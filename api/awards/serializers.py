from rest_framework import serializers

from accounts.serializers import OrgRelatedField
from grants.models import Grant
from grants.serializers import GrantBriefSerializer
from .models import Award, Report


class ReportSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    award_id = OrgRelatedField(source='award', queryset=Award.objects.all())
    grant_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Report
        fields = (
            'id',
            'org_id',
            'award_id',
            'grant_id',
            'report_type',
            'title',
            'content',
            'due_date',
            'status',
            'submitted_at',
            'metadata',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'org_id', 'grant_id', 'submitted_at', 'created_at', 'updated_at')

    def get_fields(self):
        fields = super().get_fields()
        if self.instance is not None:
            # a report never moves between awards
            fields['award_id'].read_only = True
        return fields


class AwardSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    grant_id = OrgRelatedField(source='grant', queryset=Grant.objects.all())
    grant = GrantBriefSerializer(read_only=True)

    class Meta:
        model = Award
        fields = (
            'id',
            'org_id',
            'grant_id',
            'grant',
            'amount',
            'award_date',
            'start_date',
            'end_date',
            'requirements',
            'metadata',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'org_id', 'created_at', 'updated_at')
