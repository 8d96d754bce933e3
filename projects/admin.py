"""
Projects Admin - Django admin configuration.

Provides admin interface for:
- Organizations
- Clients
- Projects (with inline tasks)
- Tasks (with inline assignments)
- Team Members
- Task Assignments
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html

from core.due_dates import format_due_at
from .models import (
    Client,
    Organization,
    Project,
    Task,
    TaskAssignment,
    TeamMember,
)


# ============================================================================
# ORGANIZATIONS & CLIENTS
# ============================================================================

@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    """Admin for organizations."""

    list_display = ['name', 'industry', 'website', 'created_at']
    search_fields = ['name', 'industry']
    ordering = ['name']


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    """Admin for clients."""

    list_display = ['full_name', 'email', 'company_name', 'organization']
    list_filter = ['organization']
    search_fields = ['first_name', 'last_name', 'email', 'company_name']


# ============================================================================
# PROJECTS
# ============================================================================

class TaskInline(admin.TabularInline):
    """Inline tasks on the project page."""

    model = Task
    fk_name = 'project'
    extra = 0
    fields = ['title', 'status', 'priority', 'due_at']
    show_change_link = True


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """Admin for projects."""

    list_display = ['name', 'client', 'organization', 'status', 'budget', 'task_count']
    list_filter = ['status', 'organization']
    search_fields = ['name', 'description']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [TaskInline]

    fieldsets = (
        (_('Basic Info'), {
            'fields': ('name', 'description', 'status', 'display_order')
        }),
        (_('Ownership'), {
            'fields': ('client', 'organization')
        }),
        (_('Timeline & Budget'), {
            'fields': ('start_date', 'expected_completion', 'budget')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


# ============================================================================
# TASKS
# ============================================================================

class TaskAssignmentInline(admin.TabularInline):
    """Inline assignments on the task page."""

    model = TaskAssignment
    extra = 0
    fields = ['team_member', 'is_completed', 'completed_at', 'estimated_hours', 'notes']
    readonly_fields = ['completed_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin for tasks."""

    list_display = ['title', 'owner_display', 'status_badge', 'priority', 'due_display']
    list_filter = ['status', 'priority']
    search_fields = ['title', 'description']
    readonly_fields = ['completed_at', 'created_at', 'updated_at']
    inlines = [TaskAssignmentInline]

    fieldsets = (
        (_('Basic Info'), {
            'fields': ('title', 'description', 'google_drive_link')
        }),
        (_('Owner'), {
            'fields': ('project', 'organization')
        }),
        (_('Status'), {
            'fields': ('status', 'priority', 'completed_at')
        }),
        (_('Due Date'), {
            'fields': ('due_at', 'due_timezone')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def owner_display(self, obj):
        return obj.owner
    owner_display.short_description = _('Owner')

    def due_display(self, obj):
        return format_due_at(obj.due_at_local) or '-'
    due_display.short_description = _('Due')

    def status_badge(self, obj):
        """Display status with color."""
        colors = {
            Task.Status.COMPLETED: 'green',
            Task.Status.NEEDS_APPROVAL: 'orange',
            Task.Status.NEEDS_CLARIFICATION: 'red',
        }
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.status, 'gray'),
            obj.get_status_display()
        )
    status_badge.short_description = _('Status')


# ============================================================================
# TEAM
# ============================================================================

@admin.register(TeamMember)
class TeamMemberAdmin(admin.ModelAdmin):
    """Admin for team members."""

    list_display = ['name', 'email', 'role', 'is_active']
    list_filter = ['role', 'is_active']
    search_fields = ['name', 'email']


@admin.register(TaskAssignment)
class TaskAssignmentAdmin(admin.ModelAdmin):
    """Admin for task assignments."""

    list_display = ['task', 'team_member', 'completion_display', 'estimated_hours', 'created_at']
    list_filter = ['is_completed', 'team_member__role']
    search_fields = ['task__title', 'team_member__name']
    readonly_fields = ['completed_at', 'assigned_by', 'created_at', 'updated_at']

    def completion_display(self, obj):
        label, color = ('✓ Completed', 'green') if obj.is_completed else ('Pending', 'gray')
        return format_html('<span style="color: {};">{}</span>', color, label)
    completion_display.short_description = _('Completion')
