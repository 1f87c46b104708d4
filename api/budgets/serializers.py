from rest_framework import serializers

from accounts.serializers import OrgRelatedField
from grants.models import Grant
from grants.serializers import GrantBriefSerializer
from .models import Budget, BudgetLineItem


class BudgetLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = BudgetLineItem
        fields = ('id', 'category', 'description', 'amount', 'justification', 'sort_order')
        read_only_fields = ('id', 'sort_order')
        extra_kwargs = {'justification': {'required': False, 'allow_blank': True}}


class BudgetSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    grant_id = OrgRelatedField(source='grant', queryset=Grant.objects.all(), required=False, allow_null=True)
    grant = GrantBriefSerializer(read_only=True)
    line_items = BudgetLineItemSerializer(many=True, required=False)

    class Meta:
        model = Budget
        fields = (
            'id',
            'org_id',
            'grant_id',
            'grant',
            'name',
            'total_amount',
            'narrative',
            'is_template',
            'metadata',
            'line_items',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'org_id', 'total_amount', 'is_template', 'created_at', 'updated_at')

    # line items are written by the view through services.replace_line_items
    def create(self, validated_data):
        validated_data.pop('line_items', None)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data.pop('line_items', None)
        return super().update(instance, validated_data)


class BudgetListSerializer(serializers.ModelSerializer):
    grant_id = serializers.IntegerField(read_only=True, allow_null=True)
    grant = GrantBriefSerializer(read_only=True)

    class Meta:
        model = Budget
        fields = ('id', 'grant_id', 'grant', 'name', 'total_amount', 'is_template', 'updated_at')
        read_only_fields = fields


class SaveTemplateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=300)
