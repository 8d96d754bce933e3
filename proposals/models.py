"""
Proposals Models - Priced client offers and their line items.

This module defines:
- Proposals: Offers to a client, converted at most once into a Project
- Proposal Items: Independently approvable line items (phases)

The persisted status is one of draft/sent/approved/declined/converted.
"Partially approved" and "fully approved" are never stored; they are derived
from the item approval flags every time they are read, so they cannot drift.
"""

from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator
from django.utils.translation import gettext_lazy as _

from core.models import TimestampedModel


# ============================================================================
# PROPOSALS
# ============================================================================

class Proposal(TimestampedModel):
    """
    Priced offer made to a client.

    A proposal carries a project only once it has been converted; the
    database rejects a converted proposal without a project and a project
    link on a proposal that is not converted.
    """

    class Status(models.TextChoices):
        DRAFT = 'draft', _('Draft')
        SENT = 'sent', _('Sent')
        APPROVED = 'approved', _('Approved')
        DECLINED = 'declined', _('Declined')
        CONVERTED = 'converted', _('Converted')

    class DisplayStatus(models.TextChoices):
        DRAFT = 'draft', _('Draft')
        SENT = 'sent', _('Sent')
        APPROVED = 'approved', _('Approved')
        DECLINED = 'declined', _('Declined')
        PARTIALLY_APPROVED = 'partially_approved', _('Partially Approved')
        FULLY_APPROVED = 'fully_approved', _('Fully Approved')
        CONVERTED = 'converted', _('Converted')

    proposal_number = models.CharField(max_length=50, unique=True, blank=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    client = models.ForeignKey(
        'projects.Client',
        on_delete=models.PROTECT,
        related_name='proposals'
    )
    organization = models.ForeignKey(
        'projects.Organization',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='proposals'
    )

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT
    )

    # Conversion
    project = models.OneToOneField(
        'projects.Project',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='source_proposal'
    )
    converted_at = models.DateTimeField(null=True, blank=True)

    approved_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_('When approvals first covered every item')
    )
    valid_until = models.DateTimeField(null=True, blank=True)
    terms = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name = _('Proposal')
        verbose_name_plural = _('Proposals')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='proposal_status_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status='converted', project__isnull=False)
                    | (~Q(status='converted') & Q(project__isnull=True))
                ),
                name='proposal_converted_iff_project',
            ),
        ]

    def __str__(self):
        return f"{self.proposal_number} - {self.title}"

    def save(self, *args, **kwargs):
        # Generate proposal number if not set
        if not self.proposal_number:
            import uuid
            from datetime import datetime
            date_str = datetime.now().strftime('%Y%m')
            unique_id = uuid.uuid4().hex[:6].upper()
            self.proposal_number = f"PRO-{date_str}-{unique_id}"

        super().save(*args, **kwargs)

    @property
    def is_converted(self):
        return self.status == self.Status.CONVERTED or self.project_id is not None


class ProposalItem(TimestampedModel):
    """Line item (phase) of a proposal, approvable on its own."""

    proposal = models.ForeignKey(
        Proposal,
        on_delete=models.CASCADE,
        related_name='items'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    timeline = models.CharField(max_length=100, blank=True, help_text=_('e.g. "2-3 weeks"'))
    phase = models.PositiveSmallIntegerField(null=True, blank=True)
    item_order = models.PositiveIntegerField(default=0)
    is_approved = models.BooleanField(default=False)
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name = _('Proposal Item')
        verbose_name_plural = _('Proposal Items')
        ordering = ['item_order', 'id']

    def __str__(self):
        return f"{self.title} ({self.amount})"
