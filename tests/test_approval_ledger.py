"""
Tests for the proposal approval ledger.

This module tests:
1. Partial maps and the derived display status
2. Withdrawing an approval
3. Rejection of items from another proposal
4. Proposal creation with items
"""

from decimal import Decimal

import pytest

from api.exceptions import InvalidFieldValueError, ResourceNotFoundError
from proposals.models import Proposal, ProposalItem
from proposals.services import ApprovalLedger, ProposalService


@pytest.mark.services
@pytest.mark.django_db
class TestSetApprovals:
    """Tests for ApprovalLedger.set_approvals."""

    def test_nothing_approved_keeps_persisted_status(self, three_item_proposal):
        proposal, _items = three_item_proposal

        summary = ApprovalLedger.summarize(proposal)

        assert summary.display_status == Proposal.Status.SENT
        assert (summary.approved_count, summary.total_count) == (0, 3)

    def test_partial_map_is_partially_approved(self, three_item_proposal):
        proposal, (first, second, third) = three_item_proposal

        proposal = ApprovalLedger.set_approvals(proposal.id, {first.id: True, third.id: True})

        summary = ApprovalLedger.summarize(proposal)
        assert summary.display_status == Proposal.DisplayStatus.PARTIALLY_APPROVED
        assert (summary.approved_count, summary.total_count) == (2, 3)

        second.refresh_from_db()
        assert second.is_approved is False

    def test_unmentioned_items_untouched(self, three_item_proposal):
        proposal, (first, second, third) = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {first.id: True, second.id: True})

        ApprovalLedger.set_approvals(proposal.id, {third.id: True})

        assert ProposalItem.objects.filter(proposal=proposal, is_approved=True).count() == 3

    def test_all_approved_is_fully_approved(self, three_item_proposal):
        proposal, items = three_item_proposal

        proposal = ApprovalLedger.set_approvals(proposal.id, {item.id: True for item in items})

        assert ApprovalLedger.summarize(proposal).display_status == Proposal.DisplayStatus.FULLY_APPROVED
        assert proposal.approved_at is not None
        assert proposal.status == Proposal.Status.SENT

    def test_unapprove(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {item.id: True for item in items})

        proposal = ApprovalLedger.set_approvals(proposal.id, {items[1].id: False})

        assert ApprovalLedger.summarize(proposal).display_status == Proposal.DisplayStatus.PARTIALLY_APPROVED

    def test_unapprove_everything_returns_to_persisted_status(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[0].id: True})

        proposal = ApprovalLedger.set_approvals(proposal.id, {items[0].id: False})

        assert ApprovalLedger.summarize(proposal).display_status == Proposal.Status.SENT

    def test_string_keys_accepted(self, three_item_proposal):
        proposal, items = three_item_proposal

        ApprovalLedger.set_approvals(proposal.id, {str(items[0].id): True})

        items[0].refresh_from_db()
        assert items[0].is_approved is True

    def test_foreign_item_rejects_whole_request(self, three_item_proposal, proposal_item_factory):
        proposal, items = three_item_proposal
        foreign = proposal_item_factory()

        with pytest.raises(InvalidFieldValueError) as exc_info:
            ApprovalLedger.set_approvals(proposal.id, {items[0].id: True, foreign.id: True})

        assert exc_info.value.extra_data['unknown_item_ids'] == [foreign.id]
        assert not ProposalItem.objects.filter(is_approved=True).exists()

    def test_non_boolean_flag_rejected(self, three_item_proposal):
        proposal, items = three_item_proposal

        with pytest.raises(InvalidFieldValueError):
            ApprovalLedger.set_approvals(proposal.id, {items[0].id: 'yes'})

    def test_map_required(self, three_item_proposal):
        proposal, _items = three_item_proposal

        with pytest.raises(InvalidFieldValueError):
            ApprovalLedger.set_approvals(proposal.id, [1, 2])

    def test_missing_proposal(self):
        with pytest.raises(ResourceNotFoundError):
            ApprovalLedger.set_approvals(999999, {})


class TestDeriveStatus:
    """derive_status is a pure function of the persisted status and counts."""

    @pytest.mark.parametrize('status,approved,total,expected', [
        ('draft', 0, 3, 'draft'),
        ('sent', 0, 3, 'sent'),
        ('sent', 1, 3, 'partially_approved'),
        ('sent', 3, 3, 'fully_approved'),
        ('sent', 0, 0, 'sent'),
        ('converted', 2, 3, 'converted'),
    ])
    def test_derive_status(self, status, approved, total, expected):
        assert ApprovalLedger.derive_status(status, approved, total) == expected


@pytest.mark.services
@pytest.mark.django_db
class TestCreateProposal:

    def test_items_and_total(self, client_factory):
        client = client_factory()

        proposal = ProposalService.create_proposal(
            title='Brand Launch',
            client=client,
            items=[
                {'title': 'Logo', 'amount': Decimal('250.00')},
                {'title': 'Website', 'amount': Decimal('1750.00')},
            ],
        )

        assert proposal.total_amount == Decimal('2000.00')
        assert proposal.organization == client.organization
        assert proposal.proposal_number.startswith('PRO-')
        assert list(proposal.items.values_list('title', 'item_order')) == [('Logo', 0), ('Website', 1)]
        assert proposal.status == Proposal.Status.DRAFT
