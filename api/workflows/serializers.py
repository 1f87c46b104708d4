from rest_framework import serializers

from .models import WorkflowExecution


class WorkflowExecutionSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    grant_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = WorkflowExecution
        fields = (
            'id',
            'org_id',
            'grant_id',
            'workflow_name',
            'status',
            'webhook_url',
            'metadata',
            'result',
            'error',
            'started_at',
            'completed_at',
            'created_at',
        )
        read_only_fields = fields
