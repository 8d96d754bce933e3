"""
Proposals API Views - Admin REST endpoints.

This module provides:
- ProposalAdminViewSet: list/retrieve/create proposals, update item
  approvals and convert an approved proposal into a project

All endpoints require a staff user.
"""

from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from django.db.models import Prefetch

from projects.api.serializers import ProjectSerializer
from projects.models import Project, Task
from ..models import Proposal
from ..services import ApprovalLedger, ProposalConversionService, ProposalService
from .serializers import (
    ProposalApprovalSerializer,
    ProposalCreateSerializer,
    ProposalSerializer,
)


class ProposalAdminViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for proposals (admin).

    Provides:
    - list: GET /api/admin/proposals
    - retrieve: GET /api/admin/proposals/{id}
    - create: POST /api/admin/proposals (with nested items)

    Custom actions:
    - approve: PUT /api/admin/proposals/{id}/approve
    - convert: POST /api/admin/proposals/{id}/convert

    Filtering:
    - ?status=sent
    - ?client=<id>
    - ?organization=<id>
    """

    queryset = Proposal.objects.select_related('client', 'organization', 'project').prefetch_related('items')
    serializer_class = ProposalSerializer
    lookup_value_regex = r'\d+'
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'client', 'organization']
    search_fields = ['title', 'proposal_number']
    ordering_fields = ['created_at', 'total_amount']
    ordering = ['-created_at']

    def create(self, request, *args, **kwargs):
        serializer = ProposalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        proposal = ProposalService.create_proposal(
            title=data.pop('title'),
            client=data.pop('client'),
            items=data.pop('items', []),
            organization=data.pop('organization', None),
            total_amount=data.pop('total_amount', None),
            **data
        )
        proposal = self.get_queryset().get(pk=proposal.pk)
        return Response(ProposalSerializer(proposal).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['put'])
    def approve(self, request, pk=None):
        """
        Set approval flags on proposal items.

        PUT /api/admin/proposals/{id}/approve
            {"itemApprovals": {"<itemId>": true, ...}}

        Returns:
            200: Proposal with derived display status
            400: Malformed map or item of another proposal
            404: Proposal not found
        """
        serializer = ProposalApprovalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        proposal = ApprovalLedger.set_approvals(pk, serializer.validated_data['item_approvals'])
        proposal = self.get_queryset().get(pk=proposal.pk)
        return Response(ProposalSerializer(proposal).data)

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        """
        Convert a proposal into a project with one task per approved item.

        POST /api/admin/proposals/{id}/convert

        Returns:
            201: Created project with its tasks
            404: Proposal not found
            409: Proposal already converted
            422: No approved items
            500: Storage failure; nothing was saved
        """
        project = ProposalConversionService.convert(pk)
        project = (
            Project.objects
            .select_related('client', 'organization')
            .prefetch_related(Prefetch('tasks', queryset=Task.objects.order_by('id')))
            .get(pk=project.pk)
        )
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)
