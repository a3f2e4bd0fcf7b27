# apps/api/views/authorization_views.py
"""
Flight Authorization API Views

Draft, submit, approve, reject and cancel flight authorizations.
"""

import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import FlightAuthorization
from apps.core.services import (
    AuthorizationStateError,
    BookingService,
    DraftAutosaveScheduler,
    FlightAuthorizationService,
)
from apps.api.serializers import (
    FlightAuthorizationSerializer,
    FlightAuthorizationListSerializer,
    FlightAuthorizationCreateSerializer,
    FlightAuthorizationApproveSerializer,
    FlightAuthorizationRejectSerializer,
)
from .base import ServiceExceptionMixin, RestrictedQuerysetMixin
from .filters import FlightAuthorizationFilter

logger = logging.getLogger(__name__)


def _form_payload(request, exclude=('booking_id',)):
    return {key: value for key, value in request.data.items() if key not in exclude}


class FlightAuthorizationViewSet(ServiceExceptionMixin, RestrictedQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for flight authorizations.

    Students see and edit only their own authorizations, and never see the
    instructor-only fields. Approve and reject are for instructors.
    """

    queryset = FlightAuthorization.objects.select_related('booking', 'flight_type')
    serializer_class = FlightAuthorizationSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = FlightAuthorizationFilter
    ordering_fields = ['flight_date', 'submitted_at', 'created_at']
    ordering = ['-flight_date']
    owner_field = 'student_id'

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.authorization_service = FlightAuthorizationService()
        self.booking_service = BookingService()

    def get_queryset(self):
        return self.restrict_queryset(super().get_queryset())

    def get_serializer_class(self):
        if self.action == 'list':
            return FlightAuthorizationListSerializer
        elif self.action == 'create':
            return FlightAuthorizationCreateSerializer
        return FlightAuthorizationSerializer

    def _respond(self, authorization, status_code=status.HTTP_200_OK):
        serializer = FlightAuthorizationSerializer(
            authorization,
            context=self.get_serializer_context()
        )
        return Response(serializer.data, status=status_code)

    def create(self, request, *args, **kwargs):
        """Create a draft authorization for a booking."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.get_booking(serializer.validated_data['booking_id'])
        authorization = self.authorization_service.create_authorization(
            booking,
            user=request.user,
            data=_form_payload(request),
        )

        return self._respond(authorization, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """Save draft fields. Only draft and rejected authorizations can be edited."""
        instance = self.get_object()
        authorization = self.authorization_service.save_draft(
            instance,
            _form_payload(request),
            user=request.user,
        )
        return self._respond(authorization)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.authorization_service.delete_authorization(instance, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """
        Submit for approval.

        Any fields in the body are merged first. Incomplete forms come back
        as 400 with a list of field errors and stay in their current state.
        """
        authorization = self.authorization_service.submit(
            self.get_object(),
            data=_form_payload(request),
            user=request.user,
        )
        return self._respond(authorization)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = FlightAuthorizationApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        authorization = self.authorization_service.approve(
            self.get_object(),
            request.user,
            notes=serializer.validated_data.get('approval_notes'),
            limitations=serializer.validated_data.get('instructor_limitations'),
        )
        return self._respond(authorization)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = FlightAuthorizationRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        authorization = self.authorization_service.reject(
            self.get_object(),
            request.user,
            serializer.validated_data['rejection_reason'],
        )
        return self._respond(authorization)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        authorization = self.authorization_service.cancel(self.get_object(), user=request.user)
        return self._respond(authorization)

    @action(detail=True, methods=['post'])
    def autosave(self, request, pk=None):
        """Queue a debounced draft save of the body; later edits replace it."""
        authorization = self.get_object()
        if not authorization.is_editable:
            raise AuthorizationStateError(
                f"Flight authorization is {authorization.status} and cannot be edited"
            )

        scheduler = DraftAutosaveScheduler(self.authorization_service)
        token = scheduler.schedule(authorization.id, _form_payload(request), user=request.user)

        return Response({
            'authorization_id': str(authorization.id),
            'token': token,
            'debounce_seconds': scheduler.debounce_seconds,
        }, status=status.HTTP_202_ACCEPTED)
