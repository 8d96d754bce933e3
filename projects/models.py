"""
Projects Models - Agency projects, tasks and team assignments.

This module defines models for delivering client work:
- Organizations: Client businesses grouping projects and org-level tasks
- Clients: Contacts at an organization
- Projects: Engagements owned by a client/organization
- Tasks: Units of work owned by exactly one project or one organization
- Team Members: Agency staff who can be assigned to tasks
- Task Assignments: One team member on one task, independently completable

Task status is a closed vocabulary with no transition graph: any status may
be written at any time, unknown values are rejected when saving.
"""

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from api.exceptions import InvalidFieldValueError, MissingRequiredFieldError
from core.due_dates import extract, to_wall_clock
from core.models import TimestampedModel


# ============================================================================
# ORGANIZATIONS & CLIENTS
# ============================================================================

class Organization(TimestampedModel):
    """Client business. Owns projects and organization-level tasks."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    website = models.URLField(blank=True)
    industry = models.CharField(max_length=100, blank=True)

    class Meta:
        verbose_name = _('Organization')
        verbose_name_plural = _('Organizations')
        ordering = ['name']

    def __str__(self):
        return self.name


class Client(TimestampedModel):
    """Contact person the agency works for."""

    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(unique=True)
    company_name = models.CharField(max_length=255, blank=True)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='clients'
    )

    class Meta:
        verbose_name = _('Client')
        verbose_name_plural = _('Clients')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.full_name or self.email

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


# ============================================================================
# PROJECTS
# ============================================================================

class Project(TimestampedModel):
    """
    Client engagement grouping tasks.

    Projects are created by hand in the console or generated from an
    approved proposal (see proposals.services.ProposalConversionService).
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', _('Active')
        PENDING = 'pending', _('Pending')
        ON_HOLD = 'on_hold', _('On Hold')
        COMPLETED = 'completed', _('Completed')

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    client = models.ForeignKey(
        Client,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='projects'
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='projects'
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )
    start_date = models.DateField(null=True, blank=True)
    expected_completion = models.DateField(null=True, blank=True)
    budget = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)]
    )
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = _('Project')
        verbose_name_plural = _('Projects')
        ordering = ['display_order', '-created_at']
        indexes = [
            models.Index(fields=['organization', 'display_order'], name='project_org_order_idx'),
            models.Index(fields=['status'], name='project_status_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def task_count(self):
        return self.tasks.count()


# ============================================================================
# TASKS
# ============================================================================

class Task(TimestampedModel):
    """
    Unit of work owned by exactly one project or one organization.

    Status may move between any two values; the only rule is that the value
    belongs to Task.Status. `pending` is a legacy alias still present in old
    rows: it is readable but written as `outstanding`.

    Due dates are stored as an aware instant together with the IANA zone the
    user typed them in, so they can be shown again with the same digits.
    """

    class Status(models.TextChoices):
        OUTSTANDING = 'outstanding', _('Outstanding')
        IN_PROGRESS = 'in_progress', _('In Progress')
        NEEDS_APPROVAL = 'needs_approval', _('Needs Approval')
        NEEDS_CLARIFICATION = 'needs_clarification', _('Needs Clarification')
        COMPLETED = 'completed', _('Completed')
        PENDING = 'pending', _('Pending (legacy)')

    class Priority(models.TextChoices):
        LOW = 'low', _('Low')
        MEDIUM = 'medium', _('Medium')
        HIGH = 'high', _('High')
        URGENT = 'urgent', _('Urgent')

    LEGACY_STATUS_ALIASES = {
        'pending': 'outstanding',
    }

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    status = models.CharField(
        max_length=30,
        choices=Status.choices,
        default=Status.IN_PROGRESS
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM
    )

    # Due date
    due_at = models.DateTimeField(null=True, blank=True, db_index=True)
    due_timezone = models.CharField(
        max_length=64,
        blank=True,
        help_text=_('IANA zone the due date was entered in')
    )

    google_drive_link = models.URLField(max_length=500, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    # Owner (exactly one)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='tasks'
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='tasks'
    )

    class Meta:
        verbose_name = _('Task')
        verbose_name_plural = _('Tasks')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project', 'status'], name='task_project_status_idx'),
            models.Index(fields=['organization', 'status'], name='task_org_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(project__isnull=False, organization__isnull=True)
                    | Q(project__isnull=True, organization__isnull=False)
                ),
                name='task_has_single_owner',
            ),
        ]

    def __str__(self):
        return self.title

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------

    @classmethod
    def writable_statuses(cls):
        return [value for value in cls.Status.values if value not in cls.LEGACY_STATUS_ALIASES]

    @classmethod
    def coerce_status(cls, value) -> str:
        """
        Validate a status value for writing.

        Raises:
            InvalidFieldValueError: value is not a known status
        """
        normalized = str(value).strip().lower() if value is not None else ''
        normalized = cls.LEGACY_STATUS_ALIASES.get(normalized, normalized)
        if normalized not in cls.writable_statuses():
            raise InvalidFieldValueError(
                field_name='status',
                value=value,
                allowed_values=cls.writable_statuses()
            )
        return normalized

    @classmethod
    def coerce_priority(cls, value) -> str:
        normalized = str(value).strip().lower() if value is not None else ''
        if normalized not in cls.Priority.values:
            raise InvalidFieldValueError(
                field_name='priority',
                value=value,
                allowed_values=cls.Priority.values
            )
        return normalized

    def apply_status(self, value):
        """Set status, stamping completed_at when the task becomes completed."""
        status = self.coerce_status(value)
        if status == self.Status.COMPLETED and self.status != self.Status.COMPLETED:
            self.completed_at = timezone.now()
        elif status != self.Status.COMPLETED:
            self.completed_at = None
        self.status = status
        return status

    def validate_owner(self):
        if self.project_id is None and self.organization_id is None:
            raise MissingRequiredFieldError(field_name='project')
        if self.project_id is not None and self.organization_id is not None:
            raise InvalidFieldValueError(
                field_name='organization',
                value=self.organization_id,
                extra_data={'detail': 'A task belongs to a project or an organization, not both.'}
            )

    def clean(self):
        """Form-level validation; the same rules save() enforces, as field errors."""
        super().clean()
        errors = {}
        if not (self.title or '').strip():
            errors['title'] = _('Title is required.')
        try:
            self.validate_owner()
        except (MissingRequiredFieldError, InvalidFieldValueError) as exc:
            errors[exc.extra_data['field']] = str(exc.detail)
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        """
        Reject unknown vocabulary and missing owner before writing.

        status and priority are normalized only when they are written, so a
        partial save never reports a value the row does not hold.
        """
        update_fields = kwargs.get('update_fields')
        if not (self.title or '').strip():
            raise MissingRequiredFieldError(field_name='title')
        if update_fields is None or 'status' in update_fields:
            self.status = self.coerce_status(self.status)
        if update_fields is None or 'priority' in update_fields:
            self.priority = self.coerce_priority(self.priority)
        self.validate_owner()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Due date views
    # ------------------------------------------------------------------

    @property
    def due_at_local(self):
        """due_at in the zone it was entered in."""
        return to_wall_clock(self.due_at, self.due_timezone or None)

    @property
    def due_parts(self):
        return extract(self.due_at_local)

    @property
    def owner(self):
        return self.project or self.organization


# ============================================================================
# TEAM
# ============================================================================

class TeamMember(TimestampedModel):
    """Agency staff member who can be assigned to tasks."""

    class Role(models.TextChoices):
        PROJECT_MANAGER = 'project_manager', _('Project Manager')
        CONTENT_WRITER = 'content_writer', _('Content Writer')
        PHOTOGRAPHER = 'photographer', _('Photographer')
        DESIGNER = 'designer', _('Designer')
        GHL_LEAD = 'ghl_lead', _('GHL Lead')
        STRATEGIST = 'strategist', _('Strategist')

    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=30, choices=Role.choices)
    phone_number = models.CharField(max_length=30, blank=True)
    profile_image_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _('Team Member')
        verbose_name_plural = _('Team Members')
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.get_role_display()})"

    def save(self, *args, **kwargs):
        if self.role not in self.Role.values:
            raise InvalidFieldValueError(
                field_name='role',
                value=self.role,
                allowed_values=self.Role.values
            )
        super().save(*args, **kwargs)


class TaskAssignment(TimestampedModel):
    """
    One team member's share of one task.

    Completion is tracked per assignment and never changes the task's own
    status: several people mark their slice done while the task owner keeps
    control of the canonical status.
    """

    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    team_member = models.ForeignKey(
        TeamMember,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='task_assignments_made'
    )

    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)

    estimated_hours = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))]
    )
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name = _('Task Assignment')
        verbose_name_plural = _('Task Assignments')
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['task', 'team_member'],
                name='unique_task_team_member',
            ),
            models.CheckConstraint(
                condition=(
                    Q(is_completed=True, completed_at__isnull=False)
                    | Q(is_completed=False, completed_at__isnull=True)
                ),
                name='assignment_completed_at_iff_completed',
            ),
            models.CheckConstraint(
                condition=Q(estimated_hours__isnull=True) | Q(estimated_hours__gte=0),
                name='assignment_estimated_hours_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.team_member.name} on {self.task.title}"

    def set_completed(self, is_completed: bool) -> bool:
        """
        Set the completion flag in memory.

        Returns False when the value is unchanged, in which case nothing
        needs to be written.
        """
        is_completed = bool(is_completed)
        if self.is_completed == is_completed:
            return False
        self.is_completed = is_completed
        self.completed_at = timezone.now() if is_completed else None
        return True
