"""
Projects API Views - REST API endpoints.

This module provides REST API views using Django Rest Framework:
- TaskViewSet: tasks, their assignments and the assignment summary
- AssignmentViewSet: update / delete a single assignment
- TeamMemberViewSet: active team members for the assignment picker
- ProjectViewSet: projects with their tasks

Writes go through projects.services so that validation, locking and
domain events live in one place; the views only translate HTTP.
All views return JSON responses.
"""

from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from django.db.models import Prefetch

from api.middleware import get_declared_timezone
from ..models import Project, Task, TaskAssignment, TeamMember
from ..services import AssignmentService, TaskService
from .serializers import (
    AssignmentCreateSerializer,
    AssignmentSummarySerializer,
    AssignmentUpdateSerializer,
    ProjectSerializer,
    TaskAssignmentSerializer,
    TaskCreateSerializer,
    TaskSerializer,
    TaskUpdateSerializer,
    TeamMemberSerializer,
)


# ============================================================================
# TASK VIEWSET
# ============================================================================

class TaskViewSet(viewsets.ModelViewSet):
    """
    ViewSet for tasks.

    Provides:
    - list: GET /api/tasks
    - retrieve: GET /api/tasks/{id}
    - create: POST /api/tasks
    - update: PUT /api/tasks/{id} (partial: only keys sent are applied)
    - destroy: DELETE /api/tasks/{id}

    Custom actions:
    - assignments: GET/POST /api/tasks/{id}/assignments
    - assignment_summary: GET /api/tasks/{id}/assignment-summary

    Filtering:
    - ?status=in_progress
    - ?priority=high
    - ?project=<id>
    - ?organization=<id>

    The caller's time zone is read from the body "timezone" key or the
    X-Timezone header.
    """

    queryset = Task.objects.select_related('project', 'organization')
    serializer_class = TaskSerializer
    lookup_value_regex = r'\d+'
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'priority', 'project', 'organization']
    search_fields = ['title', 'description']
    ordering_fields = ['created_at', 'due_at', 'priority', 'status']
    ordering = ['-created_at']
    http_method_names = ['get', 'post', 'put', 'patch', 'delete', 'head', 'options']

    def create(self, request, *args, **kwargs):
        serializer = TaskCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        task = TaskService.create_task(
            title=data['title'],
            project=data.get('project'),
            organization=data.get('organization'),
            description=data.get('description') or '',
            status=data.get('status'),
            priority=data.get('priority'),
            google_drive_link=data.get('google_drive_link') or '',
            due_date=data.get('due_date'),
            due_time=data.get('due_time') or '',
            zone=get_declared_timezone(request, data),
        )
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = TaskUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        zone = get_declared_timezone(request, changes)
        changes.pop('timezone', None)

        task = TaskService.update_task(kwargs['pk'], changes, zone=zone)
        return Response(TaskSerializer(task).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        TaskService.delete_task(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get', 'post'])
    def assignments(self, request, pk=None):
        """
        List or create assignments of a task.

        GET /api/tasks/{id}/assignments
        POST /api/tasks/{id}/assignments
            {teamMemberId, estimatedHours?, notes?}

        Returns:
            200: Array of assignments joined with team member
            201: Created assignment
            404: Task or team member not found
            409: Team member already assigned
        """
        if request.method == 'GET':
            assignments = AssignmentService.list_for_task(pk)
            return Response(TaskAssignmentSerializer(assignments, many=True).data)

        serializer = AssignmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        assignment = AssignmentService.assign(
            task_id=pk,
            team_member_id=data['team_member_id'],
            estimated_hours=data.get('estimated_hours'),
            notes=data.get('notes') or '',
            assigned_by=request.user,
        )
        return Response(
            TaskAssignmentSerializer(assignment).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['get'], url_path='assignment-summary')
    def assignment_summary(self, request, pk=None):
        """
        Completion counts over the task's assignments.

        GET /api/tasks/{id}/assignment-summary

        Returns:
            200: {task_id, total, completed, pending}
        """
        summary = AssignmentService.summarize(pk)
        return Response(AssignmentSummarySerializer(summary).data)


# ============================================================================
# ASSIGNMENT VIEWSET
# ============================================================================

class AssignmentViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for a single assignment.

    Provides:
    - retrieve: GET /api/assignments/{id}
    - update: PUT /api/assignments/{id} {isCompleted?, estimatedHours?, notes?}
    - destroy: DELETE /api/assignments/{id}

    Completion never changes the parent task's status.
    """

    queryset = TaskAssignment.objects.select_related('task', 'team_member', 'assigned_by')
    serializer_class = TaskAssignmentSerializer
    lookup_value_regex = r'\d+'
    permission_classes = [permissions.IsAuthenticated]

    def update(self, request, *args, **kwargs):
        serializer = AssignmentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        assignment = AssignmentService.update_assignment(kwargs['pk'], dict(serializer.validated_data))
        assignment = self.get_queryset().get(pk=assignment.pk)
        return Response(TaskAssignmentSerializer(assignment).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        AssignmentService.unassign(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================================
# TEAM MEMBER VIEWSET
# ============================================================================

class TeamMemberViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for team members (read-only).

    Provides:
    - list: GET /api/team-members
    - retrieve: GET /api/team-members/{id}

    Filtering:
    - ?role=designer
    - ?search=keyword
    """

    queryset = TeamMember.objects.filter(is_active=True)
    serializer_class = TeamMemberSerializer
    lookup_value_regex = r'\d+'
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['role']
    search_fields = ['name', 'email']
    ordering = ['name']


# ============================================================================
# PROJECT VIEWSET
# ============================================================================

class ProjectViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for projects (read-only).

    Provides:
    - list: GET /api/projects
    - retrieve: GET /api/projects/{id} (with tasks)
    """

    queryset = Project.objects.select_related('client', 'organization').prefetch_related(
        Prefetch('tasks', queryset=Task.objects.select_related('project', 'organization'))
    )
    serializer_class = ProjectSerializer
    lookup_value_regex = r'\d+'
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'client', 'organization']
    ordering_fields = ['display_order', 'created_at', 'name']
    ordering = ['display_order', '-created_at']
