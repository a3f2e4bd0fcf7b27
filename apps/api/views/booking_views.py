# apps/api/views/booking_views.py
"""
Booking API Views

Bookings, the authorization gate on check-out, and flight types.
"""

import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import Booking, FlightType
from apps.core.services import BookingService
from apps.api.serializers import (
    BookingSerializer,
    BookingCheckOutSerializer,
    BookingOverrideSerializer,
    AuthorizationStatusSerializer,
    FlightTypeSerializer,
)
from shared.common.permissions import IsAdminOrReadOnly
from .base import ServiceExceptionMixin, RestrictedQuerysetMixin
from .filters import BookingFilter

logger = logging.getLogger(__name__)


class BookingViewSet(ServiceExceptionMixin, RestrictedQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for bookings.

    Solo bookings are checked out only with an approved flight
    authorization or a staff override.
    """

    queryset = Booking.objects.select_related('flight_type')
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = BookingFilter
    search_fields = ['purpose', 'remarks', 'route']
    ordering_fields = ['start_time', 'created_at', 'status']
    ordering = ['-start_time']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.booking_service = BookingService()

    def get_queryset(self):
        return self.restrict_queryset(super().get_queryset())

    def perform_create(self, serializer):
        user = self.request.user
        if user.is_restricted:
            serializer.save(user_id=user.id)
        else:
            serializer.save()

    @action(detail=True, methods=['post', 'delete'], url_path='override-authorization')
    def override_authorization(self, request, pk=None):
        """Record (POST) or clear (DELETE) a staff authorization override."""
        booking = self.get_object()

        if request.method == 'DELETE':
            booking = self.booking_service.clear_override(booking, user=request.user)
            return Response(BookingSerializer(booking).data)

        serializer = BookingOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.override_authorization(
            booking,
            request.user,
            serializer.validated_data['reason'],
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=['post'], url_path='check-out')
    def check_out(self, request, pk=None):
        booking = self.get_object()
        serializer = BookingCheckOutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.check_out(booking, user=request.user, **serializer.validated_data)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=['get'], url_path='authorization-status')
    def authorization_status(self, request, pk=None):
        booking = self.get_object()
        result = self.booking_service.get_authorization_status(booking)
        return Response(AuthorizationStatusSerializer(result).data)


class FlightTypeViewSet(viewsets.ModelViewSet):
    """Flight types. Admins manage them; everyone can read."""

    queryset = FlightType.objects.all()
    serializer_class = FlightTypeSerializer
    permission_classes = [IsAdminOrReadOnly]
    filterset_fields = ['instruction_type', 'is_active']
    search_fields = ['name', 'code']
    ordering = ['name']
