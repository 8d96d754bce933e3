"""
Projects API URLs
"""

from rest_framework.routers import DefaultRouter
from .viewsets import (
    AssignmentViewSet,
    ProjectViewSet,
    TaskViewSet,
    TeamMemberViewSet,
)

app_name = 'projects'

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False

# Register all ViewSets
router.register(r'tasks', TaskViewSet, basename='task')
router.register(r'assignments', AssignmentViewSet, basename='assignment')
router.register(r'team-members', TeamMemberViewSet, basename='team-member')
router.register(r'projects', ProjectViewSet, basename='project')

urlpatterns = router.urls
