"""
Projects Serializers - DRF serializers for API endpoints.

This module provides serializers for:
- Tasks (read representation, create and partial-update input)
- Team Members
- Task Assignments (joined with the team member)
- Projects (with their tasks)

Request bodies use the console's camelCase keys (dueDate, teamMemberId,
isCompleted, ...); responses use model field names.
"""

from rest_framework import serializers
from django.utils.translation import gettext_lazy as _

from core.due_dates import format_due_at, is_overdue
from ..models import (
    Organization,
    Project,
    Task,
    TaskAssignment,
    TeamMember,
)


# ============================================================================
# TEAM MEMBER SERIALIZERS
# ============================================================================

class TeamMemberSerializer(serializers.ModelSerializer):
    """Serializer for team members."""

    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = TeamMember
        fields = [
            'id',
            'name',
            'email',
            'role',
            'role_display',
            'phone_number',
            'profile_image_url',
            'is_active',
        ]
        read_only_fields = fields


# ============================================================================
# ASSIGNMENT SERIALIZERS
# ============================================================================

class TaskAssignmentSerializer(serializers.ModelSerializer):
    """Assignment joined with its team member."""

    team_member = TeamMemberSerializer(read_only=True)
    assigned_by = serializers.CharField(source='assigned_by.get_username', read_only=True, default=None)

    class Meta:
        model = TaskAssignment
        fields = [
            'id',
            'task',
            'team_member',
            'assigned_by',
            'is_completed',
            'completed_at',
            'estimated_hours',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class AssignmentCreateSerializer(serializers.Serializer):
    """Input for POST /api/tasks/{id}/assignments."""

    teamMemberId = serializers.IntegerField(source='team_member_id')
    estimatedHours = serializers.DecimalField(
        source='estimated_hours',
        max_digits=6,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AssignmentUpdateSerializer(serializers.Serializer):
    """Input for PUT /api/assignments/{id}."""

    isCompleted = serializers.BooleanField(source='is_completed', required=False)
    estimatedHours = serializers.DecimalField(
        source='estimated_hours',
        max_digits=6,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AssignmentSummarySerializer(serializers.Serializer):
    task_id = serializers.IntegerField()
    total = serializers.IntegerField()
    completed = serializers.IntegerField()
    pending = serializers.IntegerField()


# ============================================================================
# TASK SERIALIZERS
# ============================================================================

class TaskSerializer(serializers.ModelSerializer):
    """
    Read representation of a task.

    due_at is rendered in the task's own due_timezone so the digits are the
    ones the user typed; due_date/due_time are the same value split for an
    edit form.
    """

    due_at = serializers.SerializerMethodField()
    due_date = serializers.SerializerMethodField()
    due_time = serializers.SerializerMethodField()
    due_display = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True, default=None)
    organization_name = serializers.CharField(source='organization.name', read_only=True, default=None)

    class Meta:
        model = Task
        fields = [
            'id',
            'title',
            'description',
            'status',
            'status_display',
            'priority',
            'due_at',
            'due_timezone',
            'due_date',
            'due_time',
            'due_display',
            'is_overdue',
            'google_drive_link',
            'project',
            'project_name',
            'organization',
            'organization_name',
            'completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_due_at(self, obj):
        local = obj.due_at_local
        return local.isoformat() if local else None

    def get_due_date(self, obj):
        return obj.due_parts.date

    def get_due_time(self, obj):
        return obj.due_parts.time

    def get_due_display(self, obj):
        return format_due_at(obj.due_at_local)

    def get_is_overdue(self, obj):
        return obj.status != Task.Status.COMPLETED and is_overdue(obj.due_at)


class TaskUpdateSerializer(serializers.Serializer):
    """
    Input for PUT /api/tasks/{id}.

    Only the keys present in the body are applied. Vocabulary and time
    format are validated by the service so the error kind is preserved.
    """

    title = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.CharField(required=False)
    priority = serializers.CharField(required=False)
    dueDate = serializers.CharField(source='due_date', required=False, allow_blank=True, allow_null=True)
    dueTime = serializers.CharField(source='due_time', required=False, allow_blank=True, allow_null=True)
    googleDriveLink = serializers.URLField(
        source='google_drive_link',
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=500,
    )
    timezone = serializers.CharField(required=False, allow_blank=True, write_only=True)


class TaskCreateSerializer(TaskUpdateSerializer):
    """Input for POST /api/tasks."""

    title = serializers.CharField()
    projectId = serializers.PrimaryKeyRelatedField(
        source='project',
        queryset=Project.objects.all(),
        required=False,
        allow_null=True,
    )
    organizationId = serializers.PrimaryKeyRelatedField(
        source='organization',
        queryset=Organization.objects.all(),
        required=False,
        allow_null=True,
    )

    def validate(self, data):
        """Exactly one owner."""
        has_project = data.get('project') is not None
        has_organization = data.get('organization') is not None
        if has_project == has_organization:
            raise serializers.ValidationError({
                'projectId': _('A task belongs to exactly one project or one organization.')
            })
        return data


# ============================================================================
# PROJECT SERIALIZERS
# ============================================================================

class ProjectSerializer(serializers.ModelSerializer):
    """Project with its generated or hand-made tasks."""

    tasks = TaskSerializer(many=True, read_only=True)
    task_count = serializers.IntegerField(read_only=True)
    client_name = serializers.CharField(source='client.full_name', read_only=True, default=None)
    organization_name = serializers.CharField(source='organization.name', read_only=True, default=None)

    class Meta:
        model = Project
        fields = [
            'id',
            'name',
            'description',
            'status',
            'client',
            'client_name',
            'organization',
            'organization_name',
            'budget',
            'start_date',
            'expected_completion',
            'display_order',
            'task_count',
            'tasks',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
