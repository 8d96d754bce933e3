"""
Tests for the proposal-to-project conversion pipeline.

This module tests:
1. Project and task creation from approved items
2. One-shot conversion (second call conflicts)
3. No approved items
4. All-or-nothing writes when storage fails
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from api.exceptions import (
    AlreadyConvertedError,
    ConversionFailedError,
    NoApprovedItemsError,
    ResourceNotFoundError,
)
from projects.models import Project, Task
from proposals.models import Proposal
from proposals.services import ApprovalLedger, ProposalConversionService


@pytest.mark.services
@pytest.mark.django_db
class TestConvert:
    """Tests for ProposalConversionService.convert."""

    def test_partially_approved_proposal(self, three_item_proposal):
        """Items 1 and 3 of (100, 200, 300) approved: two tasks, proposal converted."""
        proposal, (first, second, third) = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {first.id: True, third.id: True})

        project = ProposalConversionService.convert(proposal.id)

        titles = list(project.tasks.order_by('id').values_list('title', flat=True))
        assert titles == ['Discovery', 'Launch']
        assert project.task_count == 2

        proposal.refresh_from_db()
        assert proposal.status == Proposal.Status.CONVERTED
        assert proposal.project_id == project.id
        assert proposal.converted_at is not None

    def test_project_fields(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[0].id: True})

        project = ProposalConversionService.convert(proposal.id)

        assert project.name == proposal.title
        assert project.client_id == proposal.client_id
        assert project.organization_id == proposal.organization_id
        assert project.budget == Decimal('600.00')
        assert project.status == Project.Status.ACTIVE

    def test_tasks_carry_item_description_and_default_priority(self, three_item_proposal, settings):
        settings.AGENCY_DEFAULT_TASK_PRIORITY = 'high'
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[1].id: True})

        project = ProposalConversionService.convert(proposal.id)

        task = project.tasks.get()
        assert task.title == items[1].title
        assert task.description == items[1].description
        assert task.priority == Task.Priority.HIGH
        assert task.status == Task.Status.IN_PROGRESS
        assert task.organization_id is None

    def test_second_convert_conflicts(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[0].id: True})
        project = ProposalConversionService.convert(proposal.id)

        with pytest.raises(AlreadyConvertedError) as exc_info:
            ProposalConversionService.convert(proposal.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.extra_data['project_id'] == str(project.id)
        assert Project.objects.count() == 1

    def test_late_approval_is_not_carried_over(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[0].id: True})
        project = ProposalConversionService.convert(proposal.id)

        ApprovalLedger.set_approvals(proposal.id, {items[1].id: True})

        with pytest.raises(AlreadyConvertedError):
            ProposalConversionService.convert(proposal.id)
        assert project.tasks.count() == 1

    def test_lost_race_creates_nothing(self, three_item_proposal):
        """The conditional claim fails when another call converted first."""
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[0].id: True})
        other = Project.objects.create(name='Winner', client=proposal.client)

        with patch.object(Proposal, 'is_converted', new=False):
            Proposal.objects.filter(pk=proposal.pk).update(status=Proposal.Status.CONVERTED, project=other)
            with pytest.raises(AlreadyConvertedError):
                ProposalConversionService.convert(proposal.id)

        assert list(Project.objects.values_list('name', flat=True)) == ['Winner']
        assert not Task.objects.filter(title=items[0].title).exists()

    def test_no_approved_items(self, three_item_proposal):
        proposal, _items = three_item_proposal

        with pytest.raises(NoApprovedItemsError) as exc_info:
            ProposalConversionService.convert(proposal.id)

        assert exc_info.value.status_code == 422
        assert not Project.objects.exists()
        proposal.refresh_from_db()
        assert proposal.status == Proposal.Status.SENT

    def test_empty_proposal(self, proposal_factory):
        proposal = proposal_factory()

        with pytest.raises(NoApprovedItemsError):
            ProposalConversionService.convert(proposal.id)

    def test_missing_proposal(self):
        with pytest.raises(ResourceNotFoundError):
            ProposalConversionService.convert(999999)

    def test_storage_failure_rolls_back(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {item.id: True for item in items})

        with patch('proposals.services.TaskService.create_task', side_effect=DatabaseError('disk full')):
            with pytest.raises(ConversionFailedError) as exc_info:
                ProposalConversionService.convert(proposal.id)

        assert exc_info.value.status_code == 500
        assert not Project.objects.exists()
        assert not Task.objects.exists()

        proposal.refresh_from_db()
        assert proposal.status == Proposal.Status.SENT
        assert proposal.project_id is None

    def test_retry_after_failure_succeeds(self, three_item_proposal):
        proposal, items = three_item_proposal
        ApprovalLedger.set_approvals(proposal.id, {items[0].id: True})

        with patch('proposals.services.TaskService.create_task', side_effect=DatabaseError('timeout')):
            with pytest.raises(ConversionFailedError):
                ProposalConversionService.convert(proposal.id)

        project = ProposalConversionService.convert(proposal.id)

        assert project.tasks.count() == 1
