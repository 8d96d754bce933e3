"""
Proposals API URLs
"""

from rest_framework.routers import DefaultRouter
from .viewsets import ProposalAdminViewSet

app_name = 'proposals'

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False

router.register(r'admin/proposals', ProposalAdminViewSet, basename='admin-proposal')

urlpatterns = router.urls
