"""
Projects Celery Tasks - Async operations.

This module defines Celery tasks for:
- E-mailing a team member when they are assigned to a task

Tasks are queued from domain event subscribers (see projects.signals) once
the assigning transaction has committed, and retried on mail failures.
"""

import logging
from smtplib import SMTPException

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from core.due_dates import format_due_at

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name='projects.tasks.send_assignment_notification',
    max_retries=3,
    default_retry_delay=60,
)
def send_assignment_notification(self, assignment_id):
    """
    E-mail a team member about a new task assignment.

    The message carries the task title, its project or organization, the
    priority, the due date and the assignment notes.

    Args:
        assignment_id: ID of the TaskAssignment

    Returns:
        dict: Delivery summary
    """
    from .models import TaskAssignment

    try:
        assignment = TaskAssignment.objects.select_related(
            'task__project', 'task__organization', 'team_member'
        ).get(pk=assignment_id)
    except TaskAssignment.DoesNotExist:
        logger.info(f"Assignment {assignment_id} no longer exists, notification skipped")
        return {'status': 'skipped', 'assignment_id': assignment_id}

    member = assignment.team_member
    task = assignment.task
    owner = task.owner

    lines = [
        f"Hi {member.name},",
        "",
        f"You have been assigned to \"{task.title}\".",
        "",
        f"{'Project' if task.project_id else 'Organization'}: {owner.name if owner else '-'}",
        f"Priority: {task.get_priority_display()}",
        f"Due: {format_due_at(task.due_at_local) or 'No due date'}",
    ]
    if assignment.estimated_hours is not None:
        lines.append(f"Estimated hours: {assignment.estimated_hours}")
    if assignment.notes:
        lines.extend(["", "Notes:", assignment.notes])

    try:
        send_mail(
            subject=f"New task assignment: {task.title}",
            message="\n".join(lines),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[member.email],
            fail_silently=False,
        )
    except (SMTPException, OSError) as e:
        logger.error(f"Error sending assignment notification {assignment_id}: {e}")
        raise self.retry(exc=e)

    logger.info(f"Assignment notification sent to {member.email} for task {task.id}")
    return {'status': 'sent', 'assignment_id': assignment_id, 'recipient': member.email}
