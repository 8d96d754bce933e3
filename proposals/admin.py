"""
Proposals Admin - Django admin configuration.

Provides admin interface for:
- Proposals (with inline items and derived approval status)
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html

from .models import Proposal, ProposalItem
from .services import ApprovalLedger


class ProposalItemInline(admin.TabularInline):
    """Inline line items on the proposal page."""

    model = ProposalItem
    extra = 0
    fields = ['item_order', 'title', 'amount', 'timeline', 'phase', 'is_approved']


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    """Admin for proposals."""

    list_display = [
        'proposal_number',
        'title',
        'client',
        'total_amount',
        'status',
        'approval_display',
        'project',
    ]
    list_filter = ['status']
    search_fields = ['proposal_number', 'title', 'client__email']
    readonly_fields = [
        'proposal_number',
        'project',
        'approved_at',
        'converted_at',
        'created_at',
        'updated_at',
    ]
    inlines = [ProposalItemInline]

    fieldsets = (
        (_('Basic Info'), {
            'fields': ('proposal_number', 'title', 'description', 'client', 'organization')
        }),
        (_('Pricing'), {
            'fields': ('total_amount', 'valid_until', 'terms', 'notes')
        }),
        (_('Status'), {
            'fields': ('status', 'approved_at', 'project', 'converted_at')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def approval_display(self, obj):
        """Display derived approval status."""
        summary = ApprovalLedger.summarize(obj)
        colors = {
            Proposal.DisplayStatus.FULLY_APPROVED: 'green',
            Proposal.DisplayStatus.PARTIALLY_APPROVED: 'orange',
            Proposal.DisplayStatus.CONVERTED: 'blue',
        }
        return format_html(
            '<span style="color: {};">{} ({}/{})</span>',
            colors.get(summary.display_status, 'gray'),
            summary.display_status,
            summary.approved_count,
            summary.total_count
        )
    approval_display.short_description = _('Approvals')
