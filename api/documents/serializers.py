from rest_framework import serializers

from accounts.serializers import OrgRelatedField
from grants.models import Grant
from grants.serializers import GrantBriefSerializer
from .models import Document
from . import storage


class DocumentSerializer(serializers.ModelSerializer):
    """Users may only change ``category``, ``description`` and the grant link."""

    org_id = serializers.IntegerField(read_only=True)
    grant_id = OrgRelatedField(source='grant', queryset=Grant.objects.all(), required=False, allow_null=True)
    uploaded_by = serializers.IntegerField(source='uploaded_by_id', read_only=True, allow_null=True)

    class Meta:
        model = Document
        fields = (
            'id',
            'org_id',
            'grant_id',
            'uploaded_by',
            'name',
            'file',
            'file_type',
            'file_size',
            'category',
            'ai_category',
            'description',
            'extracted_text',
            'extraction_status',
            'metadata',
            'created_at',
            'updated_at',
        )
        read_only_fields = (
            'id',
            'org_id',
            'uploaded_by',
            'name',
            'file',
            'file_type',
            'file_size',
            'ai_category',
            'extracted_text',
            'extraction_status',
            'metadata',
            'created_at',
            'updated_at',
        )


class DocumentDetailSerializer(DocumentSerializer):
    grant = GrantBriefSerializer(read_only=True)
    signed_url = serializers.SerializerMethodField()

    class Meta(DocumentSerializer.Meta):
        fields = DocumentSerializer.Meta.fields + ('grant', 'signed_url')

    def get_signed_url(self, obj: Document) -> str:
        return storage.signed_url(obj.file, request=self.context.get('request'))


class UploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    grant_id = OrgRelatedField(queryset=Grant.objects.all(), required=False, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
