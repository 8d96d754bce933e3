"""
API URLs - REST API routing for the agency engine

Mounted at /api/ by the root URLConf. Routes have no trailing slash.
"""
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

app_name = 'api'

urlpatterns = [
    # Tasks, assignments, team members, projects
    path('', include('projects.api.urls')),

    # Proposal approvals and conversion
    path('', include('proposals.api.urls')),

    # OpenAPI schema
    path('schema', SpectacularAPIView.as_view(), name='schema'),
    path('docs', SpectacularSwaggerView.as_view(url_name='api:schema'), name='docs'),
]

"""
API Endpoints Available:

Tasks:
- GET /api/tasks - List tasks (?status=, ?priority=, ?project=, ?organization=)
- POST /api/tasks - Create task
- GET /api/tasks/{id} - Get task detail
- PUT /api/tasks/{id} - Update task (partial)
- DELETE /api/tasks/{id} - Delete task
- GET /api/tasks/{id}/assignments - List assignments joined with team member
- POST /api/tasks/{id}/assignments - Assign a team member
- GET /api/tasks/{id}/assignment-summary - {total, completed, pending}

Assignments:
- GET /api/assignments/{id} - Get assignment
- PUT /api/assignments/{id} - Update completion / hours / notes
- DELETE /api/assignments/{id} - Unassign

Team Members:
- GET /api/team-members - Active team members

Projects:
- GET /api/projects - List projects
- GET /api/projects/{id} - Project with tasks

Proposals (staff only):
- GET /api/admin/proposals - List proposals
- POST /api/admin/proposals - Create proposal with items
- GET /api/admin/proposals/{id} - Proposal with items and display status
- PUT /api/admin/proposals/{id}/approve - Set item approvals
- POST /api/admin/proposals/{id}/convert - Convert into a project
"""
