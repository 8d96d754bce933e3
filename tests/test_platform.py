"""
Tests for the platform plumbing: health check, request IDs and the error envelope.
"""

import pytest
from rest_framework import status


@pytest.mark.api
@pytest.mark.django_db
class TestPlatform:

    def test_health_check(self, client):
        response = client.get('/health/')

        assert response.status_code == 200
        assert response.json()['database'] == 'connected'

    def test_request_id_is_echoed(self, authenticated_api_client):
        response = authenticated_api_client.get('/api/team-members', HTTP_X_REQUEST_ID='req-123')

        assert response['X-Request-ID'] == 'req-123'

    def test_request_id_is_generated(self, authenticated_api_client):
        response = authenticated_api_client.get('/api/team-members')

        assert response['X-Request-ID']

    def test_error_envelope(self, authenticated_api_client):
        response = authenticated_api_client.get('/api/tasks/999999')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['success'] is False
        assert response.data['data'] is None
        assert response.data['error_code'] == 'NOT_FOUND'
        assert response.data['meta']['path'] == '/api/tasks/999999'
        assert 'timestamp' in response.data['meta']

    def test_team_members_lists_active_only(self, authenticated_api_client, team_member_factory):
        active = team_member_factory(name='Ada')
        team_member_factory(name='Gone', is_active=False)

        response = authenticated_api_client.get('/api/team-members')

        assert [member['id'] for member in response.data] == [active.id]

    def test_validation_envelope_lists_field_errors(self, authenticated_api_client):
        response = authenticated_api_client.post('/api/tasks', {'title': 'Nobody owns me'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Validation failed.'
        assert [error['field'] for error in response.data['errors']] == ['projectId']
        assert response.data['errors'][0]['messages']

    def test_conflict_meta_carries_ids(self, authenticated_api_client, task, team_member, task_assignment_factory):
        task_assignment_factory(task=task, team_member=team_member)

        response = authenticated_api_client.post(
            f'/api/tasks/{task.id}/assignments',
            {'teamMemberId': team_member.id},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['meta'] == {
            'task_id': str(task.id),
            'team_member_id': str(team_member.id),
            'path': f'/api/tasks/{task.id}/assignments',
            'timestamp': response.data['meta']['timestamp'],
        }
