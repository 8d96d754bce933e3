"""
Tests for the task and assignment REST endpoints.

Endpoints:
- GET/POST/PUT/DELETE /api/tasks[/{id}]
- GET/POST /api/tasks/{id}/assignments
- GET /api/tasks/{id}/assignment-summary
- PUT/DELETE /api/assignments/{id}
"""

import pytest
from rest_framework import status

from projects.models import Task, TaskAssignment


# =============================================================================
# AUTHENTICATION
# =============================================================================

@pytest.mark.api
@pytest.mark.django_db
class TestAuthentication:

    def test_anonymous_rejected(self, api_client, task):
        response = api_client.put(f'/api/tasks/{task.id}', {'status': 'completed'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['success'] is False
        assert response.data['error_code'] == 'NOT_AUTHENTICATED'

        task.refresh_from_db()
        assert task.status == Task.Status.IN_PROGRESS

    def test_anonymous_cannot_assign(self, api_client, task, team_member):
        response = api_client.post(
            f'/api/tasks/{task.id}/assignments',
            {'teamMemberId': team_member.id},
            format='json',
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert not TaskAssignment.objects.exists()


# =============================================================================
# TASKS
# =============================================================================

@pytest.mark.api
@pytest.mark.django_db
class TestTaskEndpoints:

    def test_set_due_date(self, authenticated_api_client, task):
        response = authenticated_api_client.put(
            f'/api/tasks/{task.id}',
            {'dueDate': '2025-03-01', 'dueTime': '9:30 PM', 'timezone': 'America/Vancouver'},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['due_date'] == '2025-03-01'
        assert response.data['due_time'] == '21:30'
        assert response.data['due_at'] == '2025-03-01T21:30:00-08:00'
        assert response.data['due_display'] == '3/1/2025 at 9:30 PM'

        detail = authenticated_api_client.get(f'/api/tasks/{task.id}')
        assert (detail.data['due_date'], detail.data['due_time']) == ('2025-03-01', '21:30')

    def test_timezone_header(self, authenticated_api_client, task):
        response = authenticated_api_client.put(
            f'/api/tasks/{task.id}',
            {'dueDate': '2025-03-01', 'dueTime': '9 AM'},
            format='json',
            HTTP_X_TIMEZONE='America/Toronto',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['due_timezone'] == 'America/Toronto'
        assert response.data['due_at'] == '2025-03-01T09:00:00-05:00'

    def test_invalid_time_format(self, authenticated_api_client, task):
        response = authenticated_api_client.put(
            f'/api/tasks/{task.id}',
            {'dueDate': '2025-03-01', 'dueTime': '25:00'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_code'] == 'INVALID_TIME_FORMAT'
        assert response.data['meta']['field'] == 'dueTime'

        task.refresh_from_db()
        assert task.due_at is None

    def test_time_skipped_by_dst(self, authenticated_api_client, task):
        response = authenticated_api_client.put(
            f'/api/tasks/{task.id}',
            {'dueDate': '2025-03-09', 'dueTime': '2:30 AM', 'timezone': 'America/Vancouver'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_code'] == 'NONEXISTENT_LOCAL_TIME'
        assert response.data['meta']['field'] == 'dueTime'
        assert response.data['meta']['timezone'] == 'America/Vancouver'

        task.refresh_from_db()
        assert task.due_at is None

    def test_legacy_status_survives_rename(self, authenticated_api_client, task):
        Task.objects.filter(pk=task.pk).update(status='pending')

        response = authenticated_api_client.put(f'/api/tasks/{task.id}', {'title': 'Renamed'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'pending'
        assert Task.objects.get(pk=task.pk).status == 'pending'

    def test_unknown_status(self, authenticated_api_client, task):
        response = authenticated_api_client.put(f'/api/tasks/{task.id}', {'status': 'archived'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_code'] == 'INVALID_FIELD_VALUE'
        assert response.data['meta']['field'] == 'status'

    def test_status_update(self, authenticated_api_client, task):
        response = authenticated_api_client.put(f'/api/tasks/{task.id}', {'status': 'completed'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'completed'
        assert response.data['completed_at'] is not None
        assert response.data['is_overdue'] is False

    def test_missing_task(self, authenticated_api_client):
        response = authenticated_api_client.put('/api/tasks/999999', {'status': 'completed'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error_code'] == 'NOT_FOUND'

    def test_create_organization_task(self, authenticated_api_client, organization_factory):
        organization = organization_factory()

        response = authenticated_api_client.post(
            '/api/tasks',
            {'title': 'Monthly report', 'organizationId': organization.id, 'status': 'outstanding'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['organization'] == organization.id
        assert response.data['project'] is None
        assert response.data['status'] == 'outstanding'

    def test_create_requires_one_owner(self, authenticated_api_client):
        response = authenticated_api_client.post('/api/tasks', {'title': 'Nobody owns me'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_code'] == 'VALIDATION_ERROR'

    def test_delete(self, authenticated_api_client, task):
        response = authenticated_api_client.delete(f'/api/tasks/{task.id}')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Task.objects.filter(pk=task.pk).exists()


# =============================================================================
# ASSIGNMENTS
# =============================================================================

@pytest.mark.api
@pytest.mark.django_db
class TestAssignmentEndpoints:

    def test_assign_and_list(self, authenticated_api_client, task, team_member, user):
        response = authenticated_api_client.post(
            f'/api/tasks/{task.id}/assignments',
            {'teamMemberId': team_member.id, 'estimatedHours': '2.5', 'notes': 'Draft only'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['team_member']['id'] == team_member.id
        assert response.data['team_member']['name'] == team_member.name
        assert response.data['estimated_hours'] == '2.50'
        assert response.data['assigned_by'] == user.username
        assert response.data['is_completed'] is False

        listing = authenticated_api_client.get(f'/api/tasks/{task.id}/assignments')

        assert listing.status_code == status.HTTP_200_OK
        assert [a['team_member']['email'] for a in listing.data] == [team_member.email]

    def test_duplicate_assignment(self, authenticated_api_client, task, team_member, task_assignment_factory):
        task_assignment_factory(task=task, team_member=team_member)

        response = authenticated_api_client.post(
            f'/api/tasks/{task.id}/assignments',
            {'teamMemberId': team_member.id},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error_code'] == 'DUPLICATE_ASSIGNMENT'
        assert TaskAssignment.objects.filter(task=task).count() == 1

    def test_unknown_team_member(self, authenticated_api_client, task):
        response = authenticated_api_client.post(
            f'/api/tasks/{task.id}/assignments',
            {'teamMemberId': 999999},
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_negative_hours(self, authenticated_api_client, task, team_member):
        response = authenticated_api_client.post(
            f'/api/tasks/{task.id}/assignments',
            {'teamMemberId': team_member.id, 'estimatedHours': '-1'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not TaskAssignment.objects.exists()

    def test_complete_assignment(self, authenticated_api_client, task_assignment_factory):
        assignment = task_assignment_factory()

        response = authenticated_api_client.put(
            f'/api/assignments/{assignment.id}',
            {'isCompleted': True},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_completed'] is True
        assert response.data['completed_at'] is not None

        assignment.task.refresh_from_db()
        assert assignment.task.status == Task.Status.IN_PROGRESS

    def test_summary(self, authenticated_api_client, task, task_assignment_factory):
        assignments = task_assignment_factory.create_batch(2, task=task)
        authenticated_api_client.put(f'/api/assignments/{assignments[0].id}', {'isCompleted': True}, format='json')

        response = authenticated_api_client.get(f'/api/tasks/{task.id}/assignment-summary')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'task_id': task.id, 'total': 2, 'completed': 1, 'pending': 1}

    def test_unassign(self, authenticated_api_client, task_assignment_factory):
        assignment = task_assignment_factory()

        response = authenticated_api_client.delete(f'/api/assignments/{assignment.id}')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not TaskAssignment.objects.filter(pk=assignment.pk).exists()

        again = authenticated_api_client.delete(f'/api/assignments/{assignment.id}')
        assert again.status_code == status.HTTP_404_NOT_FOUND
