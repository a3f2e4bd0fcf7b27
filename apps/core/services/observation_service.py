# apps/core/services/observation_service.py
"""
Observation Service

Aircraft observations from report to close-out.
"""

import uuid
import logging
from typing import List

from django.db import transaction
from django.utils import timezone

from apps.core.models import Observation, ObservationStage
from . import NotFoundError, ObservationStateError, ValidationError

logger = logging.getLogger(__name__)


class ObservationService:
    """Service for aircraft observations."""

    def get_observation(self, observation_id: uuid.UUID) -> Observation:
        try:
            return Observation.objects.get(id=observation_id)
        except Observation.DoesNotExist:
            raise NotFoundError(f"Observation {observation_id} not found")

    def get_open_for_aircraft(self, aircraft_id: uuid.UUID) -> List[Observation]:
        return list(
            Observation.objects.filter(aircraft_id=aircraft_id)
            .exclude(stage=ObservationStage.CLOSED)
            .order_by('-reported_date')
        )

    @transaction.atomic
    def create_observation(self, aircraft_id: uuid.UUID, name: str, reported_by: uuid.UUID, **fields) -> Observation:
        if not (name or '').strip():
            raise ValidationError(
                'Observation name is required',
                errors=[{'field': 'name', 'message': 'Observation name is required'}]
            )

        observation = Observation.objects.create(
            aircraft_id=aircraft_id,
            name=name.strip(),
            reported_by=reported_by,
            **fields
        )

        logger.info(
            f"Observation reported: {observation.name}",
            extra={
                'observation_id': str(observation.id),
                'aircraft_id': str(aircraft_id),
                'priority': observation.priority,
            }
        )

        return observation

    @transaction.atomic
    def update_observation(self, observation: Observation, **fields) -> Observation:
        """Update an open observation. Closing goes through close()."""
        if observation.is_closed:
            raise ObservationStateError('Closed observations cannot be edited')
        if fields.get('stage') == ObservationStage.CLOSED:
            raise ObservationStateError('Use the close action to close an observation')

        for field, value in fields.items():
            setattr(observation, field, value)
        observation.save()

        return observation

    @transaction.atomic
    def close(self, observation: Observation, user_id: uuid.UUID, resolution_comments: str) -> Observation:
        observation = Observation.objects.select_for_update().get(pk=observation.pk)
        if observation.is_closed:
            raise ObservationStateError('Observation is already closed')

        resolution_comments = (resolution_comments or '').strip()
        if not resolution_comments:
            raise ValidationError(
                'Resolution comments are required to close an observation',
                errors=[{'field': 'resolution_comments', 'message': 'Resolution comments are required'}]
            )

        observation.stage = ObservationStage.CLOSED
        observation.resolved_at = timezone.now()
        observation.closed_by = user_id
        observation.resolution_comments = resolution_comments
        observation.save()

        logger.info(
            f"Observation closed: {observation.name}",
            extra={'observation_id': str(observation.id), 'closed_by': str(user_id)}
        )

        return observation
