"""
Projects Signal Handlers - Domain event subscribers.

This module subscribes to engine events:
- TaskUpdated / AssignmentChanged / ProposalConverted → audit log lines
- AssignmentChanged(created) → queue the assignment e-mail

Architecture: Service → publish(event) on commit → subscriber → Celery Task
"""

import logging

from django.conf import settings

from core.events import (
    AssignmentChanged,
    ProposalApprovalsChanged,
    ProposalConverted,
    TaskUpdated,
    subscribe,
)

logger = logging.getLogger(__name__)


@subscribe(TaskUpdated, dispatch_uid='projects.log_task_updated')
def log_task_updated(sender, event, **kwargs):
    logger.info(f"[event] TaskUpdated task={event.task_id} status={event.status} fields={list(event.changed_fields)}")


@subscribe(AssignmentChanged, dispatch_uid='projects.assignment_changed')
def assignment_changed(sender, event, **kwargs):
    """
    Log assignment changes and notify newly assigned team members.

    Triggered when: an assignment is created, updated, completed,
    reopened or removed.
    Action: queue send_assignment_notification for new assignments when
    AGENCY_ASSIGNMENT_NOTIFICATIONS is on.
    """
    logger.info(
        f"[event] AssignmentChanged assignment={event.assignment_id} "
        f"task={event.task_id} member={event.team_member_id} change={event.change}"
    )

    if event.change != AssignmentChanged.CREATED:
        return
    if not getattr(settings, 'AGENCY_ASSIGNMENT_NOTIFICATIONS', True):
        return

    # Import here to avoid circular imports
    from .tasks import send_assignment_notification

    send_assignment_notification.delay(event.assignment_id)


@subscribe(ProposalApprovalsChanged, dispatch_uid='projects.log_approvals_changed')
def log_approvals_changed(sender, event, **kwargs):
    logger.info(
        f"[event] ProposalApprovalsChanged proposal={event.proposal_id} "
        f"{event.approved_count}/{event.total_count} -> {event.display_status}"
    )


@subscribe(ProposalConverted, dispatch_uid='projects.log_proposal_converted')
def log_proposal_converted(sender, event, **kwargs):
    logger.info(
        f"[event] ProposalConverted proposal={event.proposal_id} "
        f"project={event.project_id} tasks={list(event.task_ids)}"
    )
