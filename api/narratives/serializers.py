from rest_framework import serializers

from accounts.serializers import OrgRelatedField
from grants.models import Grant
from .models import Narrative


class TagsField(serializers.Field):
    """Accepts ``"a, b,,c"`` or ``["a", "b"]``; stores a list, or null when empty."""

    def to_internal_value(self, data):
        if data is None:
            return None
        if isinstance(data, str):
            parts = data.split(',')
        elif isinstance(data, list) and all(isinstance(p, str) for p in data):
            parts = data
        else:
            raise serializers.ValidationError('Tags must be a comma-separated string or a list of strings')
        tags = [p.strip() for p in parts if p.strip()]
        return tags or None

    def to_representation(self, value):
        return value


class NarrativeSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    title = serializers.CharField(max_length=300, required=False, allow_blank=True)
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    tags = TagsField(required=False, allow_null=True)

    class Meta:
        model = Narrative
        fields = ('id', 'org_id', 'title', 'content', 'category', 'tags', 'metadata', 'created_at', 'updated_at')
        read_only_fields = ('id', 'org_id', 'created_at', 'updated_at')

    def validate(self, attrs):
        title = attrs.get('title', getattr(self.instance, 'title', ''))
        content = attrs.get('content', getattr(self.instance, 'content', ''))
        if not (title or '').strip() or not (content or '').strip():
            raise serializers.ValidationError('Title and content are required')
        return attrs


class CustomizeNarrativeSerializer(serializers.Serializer):
    grant_id = OrgRelatedField(queryset=Grant.objects.all())
