from rest_framework import serializers

from accounts.serializers import OrgRelatedField
from grants.models import Grant
from grants.serializers import GrantBriefSerializer
from .models import Proposal, ProposalSection


class ChapterBlockField(serializers.ListField):
    """List of ``{"chapter": str, "sort_order": int}`` blocks, or null."""

    child = serializers.DictField()

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)


class ProposalSectionSerializer(serializers.ModelSerializer):
    proposal_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ProposalSection
        fields = (
            'id',
            'proposal_id',
            'title',
            'content',
            'header1',
            'header2',
            'tabulation',
            'sort_order',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('id', 'proposal_id', 'sort_order', 'created_at', 'updated_at')


class ProposalSerializer(serializers.ModelSerializer):
    org_id = serializers.IntegerField(read_only=True)
    grant_id = serializers.IntegerField(read_only=True)
    grant = GrantBriefSerializer(read_only=True)

    class Meta:
        model = Proposal
        fields = (
            'id',
            'org_id',
            'grant_id',
            'grant',
            'title',
            'status',
            'quality_score',
            'quality_review',
            'metadata',
            'created_at',
            'updated_at',
        )
        read_only_fields = fields


class SectionUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    title = serializers.CharField(max_length=500, allow_blank=True)
    content = ChapterBlockField()
    header1 = ChapterBlockField()
    header2 = ChapterBlockField()
    tabulation = ChapterBlockField()


class SectionsUpdateSerializer(serializers.Serializer):
    sections = SectionUpdateSerializer(many=True)
    title = serializers.CharField(max_length=500, required=False, allow_blank=True)


class SectionReorderSerializer(serializers.Serializer):
    section_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class GenerateProposalSerializer(serializers.Serializer):
    grant_id = OrgRelatedField(queryset=Grant.objects.all())
