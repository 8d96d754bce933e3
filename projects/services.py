"""
Projects Services - Task lifecycle and assignment business logic.

This module provides service classes for the task side of the engine:

- TaskService: Task creation and partial updates (status vocabulary, due dates)
- AssignmentService: Per-person assignments, completion and summaries

Services are the write boundary: every value is validated before anything
is persisted, and every successful mutation publishes a domain event.
Task status writes and assignment completion writes touch disjoint rows;
neither ever modifies the other.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from api.exceptions import (
    DuplicateAssignmentError,
    InvalidFieldValueError,
    InvalidTimeFormatError,
    MissingRequiredFieldError,
    ResourceNotFoundError,
)
from core.due_dates import combine, is_valid_time_format, resolve_timezone
from core.events import AssignmentChanged, TaskUpdated, publish

from .models import Task, TaskAssignment, TeamMember

logger = logging.getLogger(__name__)

_UNSET = object()

DUE_FIELDS = ('due_date', 'due_time')


@dataclass
class AssignmentSummary:
    """Completion summary over the assignments of one task."""
    task_id: int
    total: int = 0
    completed: int = 0
    pending: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _zone_name(tz) -> str:
    return getattr(tz, 'key', None) or str(tz)


def _coerce_hours(value) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidFieldValueError(field_name='estimatedHours', value=value)
    if not hours.is_finite() or hours < 0:
        raise InvalidFieldValueError(field_name='estimatedHours', value=value)
    return hours


# =============================================================================
# TASK SERVICE
# =============================================================================

class TaskService:
    """
    Service for task lifecycle operations.

    Status is a closed vocabulary without a transition graph; any known
    status may be written at any time.
    """

    @staticmethod
    def get_task(task_id) -> Task:
        try:
            return Task.objects.select_related('project', 'organization').get(pk=task_id)
        except (Task.DoesNotExist, ValueError, TypeError):
            raise ResourceNotFoundError(resource_type='Task', resource_id=task_id)

    @staticmethod
    def resolve_due(task: Optional[Task], changes: Dict[str, Any], zone=None):
        """
        Compute the new (due_at, due_timezone) pair for a write.

        Returns _UNSET when the write does not touch the due date. A due date
        of None or "" clears it. When only one of date/time is sent, the
        other is taken from the task's stored due value.

        Raises:
            InvalidTimeFormatError: due time is not an accepted format
            DueDateParseError: due date cannot be read
            MissingRequiredFieldError: a time is sent with no date to apply it to
            NonexistentLocalTimeError: the due time is skipped by a DST change
        """
        if not any(field in changes for field in DUE_FIELDS):
            return _UNSET

        due_date = changes.get('due_date', _UNSET)
        due_time = changes.get('due_time', _UNSET)

        if due_time not in (_UNSET, None) and str(due_time).strip():
            if not is_valid_time_format(due_time):
                raise InvalidTimeFormatError(value=due_time, field_name='dueTime')

        if due_date is not _UNSET and (due_date is None or str(due_date).strip() == ''):
            return None, ''

        stored = task.due_parts if task is not None else None
        if due_date is _UNSET:
            if stored is None or not stored.date:
                raise MissingRequiredFieldError(field_name='dueDate')
            due_date = stored.date
        if due_time is _UNSET:
            due_time = stored.time if stored is not None else ''

        tz = resolve_timezone(zone)
        return combine(due_date, due_time or '', tz), _zone_name(tz)

    @staticmethod
    @transaction.atomic
    def create_task(
        title: str,
        project=None,
        organization=None,
        description: str = '',
        status: Optional[str] = None,
        priority: Optional[str] = None,
        google_drive_link: str = '',
        due_date=None,
        due_time: str = '',
        zone=None,
    ) -> Task:
        """
        Create a task owned by exactly one project or organization.

        Raises:
            MissingRequiredFieldError: no title or no owner
            InvalidFieldValueError: unknown status/priority, or two owners
        """
        task = Task(
            title=(title or '').strip(),
            description=description or '',
            project=project,
            organization=organization,
            status=Task.Status.IN_PROGRESS,
            priority=Task.coerce_priority(priority) if priority else Task.Priority.MEDIUM,
            google_drive_link=google_drive_link or '',
        )
        if status:
            task.apply_status(status)

        due_changes = {}
        if due_date:
            due_changes['due_date'] = due_date
        if due_time:
            due_changes['due_time'] = due_time
        if due_changes:
            task.due_at, task.due_timezone = TaskService.resolve_due(None, due_changes, zone)

        task.save()

        logger.info(f"Task created: {task.title} (ID: {task.id})")
        publish(TaskUpdated(
            task_id=task.id,
            status=task.status,
            changed_fields=('created',),
        ))
        return task

    @staticmethod
    @transaction.atomic
    def update_task(task_id, changes: Dict[str, Any], zone=None) -> Task:
        """
        Apply a partial update to a task.

        Every field is validated before anything is written, so a rejected
        request leaves the task untouched. Assignments are never modified.

        Args:
            task_id: Task primary key
            changes: Any of title, description, status, priority,
                google_drive_link, due_date, due_time
            zone: Caller-declared time zone for the due date

        Returns:
            The updated Task

        Raises:
            ResourceNotFoundError, MissingRequiredFieldError,
            InvalidFieldValueError, InvalidTimeFormatError,
            DueDateParseError, InvalidTimezoneError, NonexistentLocalTimeError
        """
        try:
            task = Task.objects.select_for_update().get(pk=task_id)
        except (Task.DoesNotExist, ValueError, TypeError):
            raise ResourceNotFoundError(resource_type='Task', resource_id=task_id)

        # Validate
        validated = {}
        if 'title' in changes:
            title = (changes['title'] or '').strip()
            if not title:
                raise MissingRequiredFieldError(field_name='title')
            validated['title'] = title
        if 'status' in changes:
            validated['status'] = Task.coerce_status(changes['status'])
        if 'priority' in changes:
            validated['priority'] = Task.coerce_priority(changes['priority'])
        if 'description' in changes:
            validated['description'] = changes['description'] or ''
        if 'google_drive_link' in changes:
            validated['google_drive_link'] = changes['google_drive_link'] or ''

        due = TaskService.resolve_due(task, changes, zone)

        # Apply
        update_fields = []
        for field, value in validated.items():
            if field == 'status':
                task.apply_status(value)
                update_fields.extend(['status', 'completed_at'])
            else:
                setattr(task, field, value)
                update_fields.append(field)

        if due is not _UNSET:
            task.due_at, task.due_timezone = due
            update_fields.extend(['due_at', 'due_timezone'])

        if not update_fields:
            return task

        task.save(update_fields=update_fields + ['updated_at'])

        changed = tuple(dict.fromkeys(update_fields))
        logger.info(f"Task updated: {task.id} fields={','.join(changed)}")
        publish(TaskUpdated(task_id=task.id, status=task.status, changed_fields=changed))
        return task

    @staticmethod
    @transaction.atomic
    def delete_task(task_id) -> None:
        task = TaskService.get_task(task_id)
        task.delete()
        logger.info(f"Task deleted: {task_id}")
        publish(TaskUpdated(task_id=int(task_id), status='', changed_fields=('deleted',)))


# =============================================================================
# ASSIGNMENT SERVICE
# =============================================================================

class AssignmentService:
    """
    Service for per-person task assignments.

    At most one assignment exists per (task, team member). The database
    uniqueness constraint is authoritative; the pre-check only gives a
    friendlier path for the common case.
    """

    @staticmethod
    def get_assignment(assignment_id) -> TaskAssignment:
        try:
            return TaskAssignment.objects.select_related('task', 'team_member').get(pk=assignment_id)
        except (TaskAssignment.DoesNotExist, ValueError, TypeError):
            raise ResourceNotFoundError(resource_type='TaskAssignment', resource_id=assignment_id)

    @staticmethod
    def list_for_task(task_id):
        task = TaskService.get_task(task_id)
        return (
            TaskAssignment.objects
            .filter(task=task)
            .select_related('team_member', 'assigned_by')
            .order_by('created_at', 'id')
        )

    @staticmethod
    def assign(
        task_id,
        team_member_id,
        estimated_hours=None,
        notes: str = '',
        assigned_by=None,
    ) -> TaskAssignment:
        """
        Attach a team member to a task.

        Raises:
            ResourceNotFoundError: task or team member does not exist
            InvalidFieldValueError: negative or non-numeric estimated hours
            DuplicateAssignmentError: the member is already on the task
        """
        task = TaskService.get_task(task_id)
        try:
            member = TeamMember.objects.get(pk=team_member_id)
        except (TeamMember.DoesNotExist, ValueError, TypeError):
            raise ResourceNotFoundError(resource_type='TeamMember', resource_id=team_member_id)

        hours = _coerce_hours(estimated_hours)

        if TaskAssignment.objects.filter(task=task, team_member=member).exists():
            logger.warning(f"Duplicate assignment rejected: task={task.id}, member={member.id}")
            raise DuplicateAssignmentError(task_id=task.id, team_member_id=member.id)

        try:
            with transaction.atomic():
                assignment = TaskAssignment.objects.create(
                    task=task,
                    team_member=member,
                    assigned_by=assigned_by if getattr(assigned_by, 'is_authenticated', False) else None,
                    estimated_hours=hours,
                    notes=notes or '',
                )
        except IntegrityError:
            logger.warning(f"Concurrent duplicate assignment rejected: task={task.id}, member={member.id}")
            raise DuplicateAssignmentError(task_id=task.id, team_member_id=member.id)

        logger.info(f"Assigned {member.name} to task {task.id} (assignment {assignment.id})")
        publish(AssignmentChanged(
            assignment_id=assignment.id,
            task_id=task.id,
            team_member_id=member.id,
            change=AssignmentChanged.CREATED,
        ))
        return assignment

    @staticmethod
    @transaction.atomic
    def set_completion(assignment_id, is_completed: bool) -> TaskAssignment:
        """
        Mark an assignment done or not done.

        Setting the value it already has writes nothing. The parent task's
        status is never touched.
        """
        return AssignmentService.update_assignment(assignment_id, {'is_completed': is_completed})

    @staticmethod
    @transaction.atomic
    def update_assignment(assignment_id, changes: Dict[str, Any]) -> TaskAssignment:
        """
        Apply a partial update (is_completed, estimated_hours, notes).

        Raises:
            ResourceNotFoundError, InvalidFieldValueError
        """
        try:
            assignment = TaskAssignment.objects.select_for_update().get(pk=assignment_id)
        except (TaskAssignment.DoesNotExist, ValueError, TypeError):
            raise ResourceNotFoundError(resource_type='TaskAssignment', resource_id=assignment_id)

        if 'is_completed' in changes and not isinstance(changes['is_completed'], bool):
            raise InvalidFieldValueError(
                field_name='isCompleted',
                value=changes['is_completed'],
                allowed_values=[True, False],
            )
        hours = _coerce_hours(changes['estimated_hours']) if 'estimated_hours' in changes else _UNSET

        update_fields = []
        completion_changed = False
        if 'is_completed' in changes:
            completion_changed = assignment.set_completed(changes['is_completed'])
            if completion_changed:
                update_fields.extend(['is_completed', 'completed_at'])
        if hours is not _UNSET and hours != assignment.estimated_hours:
            assignment.estimated_hours = hours
            update_fields.append('estimated_hours')
        if 'notes' in changes and (changes['notes'] or '') != assignment.notes:
            assignment.notes = changes['notes'] or ''
            update_fields.append('notes')

        if not update_fields:
            return assignment

        assignment.save(update_fields=update_fields + ['updated_at'])

        if completion_changed:
            change = AssignmentChanged.COMPLETED if assignment.is_completed else AssignmentChanged.REOPENED
        else:
            change = AssignmentChanged.UPDATED

        logger.info(f"Assignment {assignment.id} {change}")
        publish(AssignmentChanged(
            assignment_id=assignment.id,
            task_id=assignment.task_id,
            team_member_id=assignment.team_member_id,
            change=change,
        ))
        return assignment

    @staticmethod
    @transaction.atomic
    def unassign(assignment_id) -> None:
        assignment = AssignmentService.get_assignment(assignment_id)
        event = AssignmentChanged(
            assignment_id=assignment.id,
            task_id=assignment.task_id,
            team_member_id=assignment.team_member_id,
            change=AssignmentChanged.REMOVED,
        )
        assignment.delete()
        logger.info(f"Assignment {event.assignment_id} removed from task {event.task_id}")
        publish(event)

    @staticmethod
    def summarize(task_id) -> AssignmentSummary:
        """Aggregate completion counts; pending is always total - completed."""
        task = TaskService.get_task(task_id)
        counts = TaskAssignment.objects.filter(task=task).aggregate(
            total=Count('id'),
            completed=Count('id', filter=Q(is_completed=True)),
        )
        total = counts['total'] or 0
        completed = counts['completed'] or 0
        return AssignmentSummary(
            task_id=task.id,
            total=total,
            completed=completed,
            pending=total - completed,
        )
