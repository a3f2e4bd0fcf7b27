# apps/api/views/membership_views.py
"""
Membership API Views
"""

import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import Membership, MembershipType
from apps.core.services import MembershipService
from apps.api.serializers import (
    InvoiceSerializer,
    MembershipSerializer,
    MembershipCreateSerializer,
    MembershipUpdateSerializer,
    MembershipRenewSerializer,
    MembershipMarkPaidSerializer,
    MembershipStatusSerializer,
    MembershipTypeSerializer,
)
from shared.common.permissions import IsAdminOrReadOnly
from .base import ServiceExceptionMixin, RestrictedQuerysetMixin
from .filters import MembershipFilter

logger = logging.getLogger(__name__)


class MembershipViewSet(ServiceExceptionMixin, RestrictedQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for memberships.

    Members can read their own memberships and status; admins manage
    memberships, renewals and payments.
    """

    queryset = Membership.objects.select_related('membership_type', 'invoice')
    serializer_class = MembershipSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = MembershipFilter
    ordering_fields = ['start_date', 'expiry_date', 'created_at']
    ordering = ['-start_date']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.membership_service = MembershipService()

    def get_queryset(self):
        return self.restrict_queryset(super().get_queryset())

    def get_serializer_class(self):
        if self.action == 'create':
            return MembershipCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return MembershipUpdateSerializer
        return MembershipSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        membership = self.membership_service.create_membership(
            user_id=data['user_id'],
            membership_type=data['membership_type_id'],
            start_date=data.get('start_date'),
            expiry_date=data.get('expiry_date'),
            auto_renew=data['auto_renew'],
            notes=data.get('notes'),
            created_by=request.user.id,
            create_invoice=data['create_invoice'],
        )

        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user.id)

    def update(self, request, *args, **kwargs):
        super().update(request, *args, **kwargs)
        return Response(MembershipSerializer(self.get_object()).data)

    @action(detail=False, methods=['get'], url_path='status')
    def membership_status(self, request):
        """
        Membership summary for a user.

        Staff may pass ?user_id=; everyone else gets their own.
        """
        user_id = request.user.id
        if not request.user.is_restricted and request.query_params.get('user_id'):
            user_id = request.query_params['user_id']

        summary = self.membership_service.get_status(user_id)
        return Response(MembershipStatusSerializer(summary).data)

    @action(detail=True, methods=['post'])
    def renew(self, request, pk=None):
        serializer = MembershipRenewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        membership = self.membership_service.renew_membership(
            self.get_object(),
            membership_type=data.get('membership_type_id'),
            auto_renew=data.get('auto_renew'),
            notes=data.get('notes'),
            user_id=request.user.id,
        )
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='create-invoice')
    def create_invoice(self, request, pk=None):
        invoice = self.membership_service.create_membership_invoice(
            self.get_object(),
            created_by=request.user.id,
        )
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        serializer = MembershipMarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        membership = self.membership_service.mark_paid(
            self.get_object(),
            amount_paid=serializer.validated_data.get('amount_paid'),
            user_id=request.user.id,
        )
        return Response(MembershipSerializer(membership).data)


class MembershipTypeViewSet(viewsets.ModelViewSet):
    """Membership types. Non-admins only see active types."""

    queryset = MembershipType.objects.all()
    serializer_class = MembershipTypeSerializer
    permission_classes = [IsAdminOrReadOnly]
    filterset_fields = ['is_active', 'code']
    ordering = ['name']

    def get_queryset(self):
        queryset = super().get_queryset()
        if not getattr(self.request.user, 'is_admin', False):
            queryset = queryset.filter(is_active=True)
        return queryset
