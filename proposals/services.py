"""
Proposals Services - Approval ledger and proposal-to-project conversion.

This module provides service classes for proposals:

- ProposalService: Creating proposals with their line items
- ApprovalLedger: Per-item approval flags and the derived display status
- ProposalConversionService: One-shot conversion into a Project with one
  Task per approved item

Conversion guarantees:
- A proposal is converted at most once. The "not yet converted" check and
  the flip to converted are a single conditional UPDATE, so of two
  concurrent calls exactly one wins and the other gets AlreadyConvertedError.
- Project, tasks and the proposal update commit together or not at all.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from api.exceptions import (
    AlreadyConvertedError,
    ConversionFailedError,
    InvalidFieldValueError,
    NoApprovedItemsError,
    ResourceNotFoundError,
)
from core.events import ProposalApprovalsChanged, ProposalConverted, publish
from projects.models import Project
from projects.services import TaskService

from .models import Proposal, ProposalItem

logger = logging.getLogger(__name__)


@dataclass
class ApprovalSummary:
    """Approval counts and the display status derived from them."""
    proposal_id: int
    approved_count: int
    total_count: int
    display_status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_proposal(proposal_id, for_update: bool = False) -> Proposal:
    queryset = Proposal.objects.select_related('client', 'organization', 'project')
    if for_update:
        queryset = Proposal.objects.select_for_update()
    try:
        return queryset.get(pk=proposal_id)
    except (Proposal.DoesNotExist, ValueError, TypeError):
        raise ResourceNotFoundError(resource_type='Proposal', resource_id=proposal_id)


# =============================================================================
# PROPOSAL SERVICE
# =============================================================================

class ProposalService:
    """Service for creating proposals."""

    @staticmethod
    @transaction.atomic
    def create_proposal(
        title: str,
        client,
        items: Iterable[Dict[str, Any]] = (),
        organization=None,
        total_amount: Optional[Decimal] = None,
        **fields
    ) -> Proposal:
        """
        Create a proposal and its line items.

        total_amount defaults to the sum of the item amounts.
        """
        items = list(items)
        if total_amount is None:
            total_amount = sum((Decimal(item.get('amount') or 0) for item in items), Decimal('0'))

        proposal = Proposal.objects.create(
            title=title,
            client=client,
            organization=organization or client.organization,
            total_amount=total_amount,
            **fields
        )
        ProposalItem.objects.bulk_create([
            ProposalItem(proposal=proposal, **{'item_order': index, **item})
            for index, item in enumerate(items)
        ])

        logger.info(f"Proposal created: {proposal.proposal_number} ({len(items)} items)")
        return proposal


# =============================================================================
# APPROVAL LEDGER
# =============================================================================

class ApprovalLedger:
    """
    Per-item approval flags of a proposal.

    Approvals can be withdrawn as well as granted; the ledger has no
    ratchet. The display status is recomputed from the items on every read.
    """

    @staticmethod
    def derive_status(status: str, approved_count: int, total_count: int) -> str:
        """
        Derive the display status from the persisted status and item counts.

        - converted stays converted
        - every item approved (and at least one item) -> fully_approved
        - some but not all approved -> partially_approved
        - none approved -> the persisted status unchanged
        """
        if status == Proposal.Status.CONVERTED:
            return Proposal.DisplayStatus.CONVERTED
        if total_count > 0 and approved_count == total_count:
            return Proposal.DisplayStatus.FULLY_APPROVED
        if approved_count > 0:
            return Proposal.DisplayStatus.PARTIALLY_APPROVED
        return status

    @staticmethod
    def summarize(proposal: Proposal) -> ApprovalSummary:
        flags = list(ProposalItem.objects.filter(proposal=proposal).values_list('is_approved', flat=True))
        approved_count = sum(1 for flag in flags if flag)
        return ApprovalSummary(
            proposal_id=proposal.id,
            approved_count=approved_count,
            total_count=len(flags),
            display_status=ApprovalLedger.derive_status(proposal.status, approved_count, len(flags)),
        )

    @staticmethod
    def _coerce_approvals(item_approvals) -> Dict[int, bool]:
        if not isinstance(item_approvals, dict):
            raise InvalidFieldValueError(
                field_name='itemApprovals',
                value=item_approvals,
                extra_data={'detail': 'Expected an object mapping item id to true/false.'}
            )

        approvals = {}
        for key, value in item_approvals.items():
            try:
                item_id = int(key)
            except (TypeError, ValueError):
                raise InvalidFieldValueError(field_name='itemApprovals', value=key)
            if not isinstance(value, bool):
                raise InvalidFieldValueError(
                    field_name=f'itemApprovals.{key}',
                    value=value,
                    allowed_values=[True, False]
                )
            approvals[item_id] = value
        return approvals

    @staticmethod
    @transaction.atomic
    def set_approvals(proposal_id, item_approvals: Dict[Any, bool]) -> Proposal:
        """
        Apply approval flags to the named items only.

        A partial map is legal; items not mentioned keep their flag. An item
        id that does not belong to the proposal rejects the whole request.

        Args:
            proposal_id: Proposal primary key
            item_approvals: {item_id: bool}

        Returns:
            The proposal

        Raises:
            ResourceNotFoundError: proposal does not exist
            InvalidFieldValueError: malformed map or foreign item id
        """
        approvals = ApprovalLedger._coerce_approvals(item_approvals)
        proposal = get_proposal(proposal_id, for_update=True)

        current = dict(
            ProposalItem.objects
            .select_for_update()
            .filter(proposal=proposal)
            .values_list('id', 'is_approved')
        )
        unknown = sorted(set(approvals) - set(current))
        if unknown:
            logger.warning(f"Approval update for proposal {proposal.id} names foreign items: {unknown}")
            raise InvalidFieldValueError(
                field_name='itemApprovals',
                value=','.join(map(str, unknown)),
                extra_data={'unknown_item_ids': unknown}
            )

        now = timezone.now()
        for flag in (True, False):
            changed = [
                item_id for item_id, value in approvals.items()
                if value is flag and current[item_id] is not flag
            ]
            if changed:
                ProposalItem.objects.filter(pk__in=changed).update(is_approved=flag, updated_at=now)

        summary = ApprovalLedger.summarize(proposal)
        if summary.display_status == Proposal.DisplayStatus.FULLY_APPROVED and proposal.approved_at is None:
            proposal.approved_at = now
            proposal.save(update_fields=['approved_at', 'updated_at'])

        logger.info(
            f"Approvals applied to proposal {proposal.id}: "
            f"{summary.approved_count}/{summary.total_count} ({summary.display_status})"
        )
        publish(ProposalApprovalsChanged(
            proposal_id=proposal.id,
            approved_count=summary.approved_count,
            total_count=summary.total_count,
            display_status=summary.display_status,
        ))
        return get_proposal(proposal.id)


# =============================================================================
# CONVERSION PIPELINE
# =============================================================================

class ProposalConversionService:
    """
    Turns a proposal's approved items into a Project and its Tasks.

    Unapproved items are not carried over and there is no way to convert
    more items later: a proposal is converted once.
    """

    @staticmethod
    def convert(proposal_id) -> Project:
        """
        Convert a proposal into a project.

        Returns:
            The new Project; its task count equals the number of items
            approved at the time of conversion.

        Raises:
            ResourceNotFoundError: proposal does not exist
            AlreadyConvertedError: proposal was converted before
            NoApprovedItemsError: no item is approved
            ConversionFailedError: storage failed; nothing was persisted
        """
        try:
            with transaction.atomic():
                return ProposalConversionService._convert(proposal_id)
        except DatabaseError as e:
            logger.exception(f"Conversion of proposal {proposal_id} rolled back: {e}")
            raise ConversionFailedError(proposal_id=proposal_id)

    @staticmethod
    def _convert(proposal_id) -> Project:
        proposal = get_proposal(proposal_id, for_update=True)

        if proposal.is_converted:
            logger.warning(f"Proposal {proposal.id} already converted to project {proposal.project_id}")
            raise AlreadyConvertedError(proposal_id=proposal.id, project_id=proposal.project_id)

        approved_items: List[ProposalItem] = list(
            proposal.items.filter(is_approved=True).order_by('item_order', 'id')
        )
        if not approved_items:
            raise NoApprovedItemsError(proposal_id=proposal.id)

        project = Project.objects.create(
            name=proposal.title,
            description=proposal.description,
            client=proposal.client,
            organization=proposal.organization,
            budget=proposal.total_amount,
            status=Project.Status.ACTIVE,
        )

        priority = getattr(settings, 'AGENCY_DEFAULT_TASK_PRIORITY', 'medium')
        tasks = [
            TaskService.create_task(
                title=item.title,
                description=item.description,
                project=project,
                priority=priority,
            )
            for item in approved_items
        ]

        now = timezone.now()
        claimed = (
            Proposal.objects
            .filter(pk=proposal.pk, project__isnull=True)
            .exclude(status=Proposal.Status.CONVERTED)
            .update(
                status=Proposal.Status.CONVERTED,
                project=project,
                converted_at=now,
                updated_at=now,
            )
        )
        if claimed != 1:
            raise AlreadyConvertedError(proposal_id=proposal.id)

        logger.info(
            f"Proposal {proposal.proposal_number} converted to project {project.id} "
            f"with {len(tasks)} tasks"
        )
        publish(ProposalConverted(
            proposal_id=proposal.id,
            project_id=project.id,
            task_ids=tuple(task.id for task in tasks),
        ))
        return project
