"""
Proposals Serializers - DRF serializers for the admin proposal endpoints.

This module provides serializers for:
- Proposals with their items and derived approval status
- Proposal creation with nested items
- Approval updates ({itemApprovals: {itemId: bool}})
"""

from rest_framework import serializers

from projects.models import Client, Organization
from ..models import Proposal, ProposalItem
from ..services import ApprovalLedger


# ============================================================================
# PROPOSAL ITEM SERIALIZERS
# ============================================================================

class ProposalItemSerializer(serializers.ModelSerializer):
    """Serializer for proposal line items."""

    class Meta:
        model = ProposalItem
        fields = [
            'id',
            'title',
            'description',
            'amount',
            'timeline',
            'phase',
            'item_order',
            'is_approved',
            'notes',
        ]
        read_only_fields = ['id', 'is_approved']


# ============================================================================
# PROPOSAL SERIALIZERS
# ============================================================================

class ProposalSerializer(serializers.ModelSerializer):
    """Full proposal with items and the approval summary."""

    items = ProposalItemSerializer(many=True, read_only=True)
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    organization_name = serializers.CharField(source='organization.name', read_only=True, default=None)
    display_status = serializers.SerializerMethodField()
    approved_count = serializers.SerializerMethodField()
    total_count = serializers.SerializerMethodField()

    class Meta:
        model = Proposal
        fields = [
            'id',
            'proposal_number',
            'title',
            'description',
            'client',
            'client_name',
            'organization',
            'organization_name',
            'total_amount',
            'status',
            'display_status',
            'approved_count',
            'total_count',
            'project',
            'approved_at',
            'converted_at',
            'valid_until',
            'terms',
            'notes',
            'items',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def _summary(self, obj):
        cache = self.context.setdefault('_approval_summaries', {})
        if obj.pk not in cache:
            cache[obj.pk] = ApprovalLedger.summarize(obj)
        return cache[obj.pk]

    def get_display_status(self, obj):
        return self._summary(obj).display_status

    def get_approved_count(self, obj):
        return self._summary(obj).approved_count

    def get_total_count(self, obj):
        return self._summary(obj).total_count


class ProposalCreateSerializer(serializers.Serializer):
    """Input for POST /api/admin/proposals."""

    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    clientId = serializers.PrimaryKeyRelatedField(source='client', queryset=Client.objects.all())
    organizationId = serializers.PrimaryKeyRelatedField(
        source='organization',
        queryset=Organization.objects.all(),
        required=False,
        allow_null=True,
    )
    totalAmount = serializers.DecimalField(
        source='total_amount',
        max_digits=12,
        decimal_places=2,
        min_value=0,
        required=False,
    )
    status = serializers.ChoiceField(
        choices=[Proposal.Status.DRAFT, Proposal.Status.SENT],
        required=False,
    )
    validUntil = serializers.DateTimeField(source='valid_until', required=False, allow_null=True)
    terms = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = ProposalItemSerializer(many=True, required=False)


class ProposalApprovalSerializer(serializers.Serializer):
    """Input for PUT /api/admin/proposals/{id}/approve."""

    itemApprovals = serializers.DictField(
        source='item_approvals',
        child=serializers.BooleanField(),
        allow_empty=True,
    )
