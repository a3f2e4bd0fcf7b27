# apps/api/views/observation_views.py
"""
Observation API Views
"""

import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import Observation
from apps.core.services import ObservationService
from apps.api.serializers import ObservationSerializer, ObservationCloseSerializer
from shared.common.permissions import IsInstructor
from .base import ServiceExceptionMixin
from .filters import ObservationFilter

logger = logging.getLogger(__name__)


class ObservationViewSet(ServiceExceptionMixin, viewsets.ModelViewSet):
    """
    Aircraft observations.

    Anyone signed in can report one; closing and deleting are for
    instructors and above.
    """

    queryset = Observation.objects.all()
    serializer_class = ObservationSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ObservationFilter
    search_fields = ['name', 'description']
    ordering_fields = ['reported_date', 'priority', 'created_at']
    ordering = ['-reported_date']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.observation_service = ObservationService()

    def get_permissions(self):
        if self.action in ['close', 'destroy']:
            return [IsInstructor()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        observation = self.observation_service.create_observation(
            aircraft_id=data.pop('aircraft_id'),
            name=data.pop('name'),
            reported_by=request.user.id,
            **data
        )
        return Response(ObservationSerializer(observation).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        observation = self.observation_service.update_observation(instance, **serializer.validated_data)
        return Response(ObservationSerializer(observation).data)

    @action(detail=True, methods=['post'])
    def close(self, request, pk=None):
        serializer = ObservationCloseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        observation = self.observation_service.close(
            self.get_object(),
            request.user.id,
            serializer.validated_data['resolution_comments'],
        )
        return Response(ObservationSerializer(observation).data)
