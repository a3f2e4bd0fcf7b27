# apps/core/models/observation.py
"""
Observation Model

Defects and observations raised against an aircraft.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import BaseModel


class ObservationStage(models.TextChoices):
    OPEN = 'open', 'Open'
    INVESTIGATION = 'investigation', 'Investigation'
    RESOLUTION = 'resolution', 'Resolution'
    CLOSED = 'closed', 'Closed'


class ObservationPriority(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'


class Observation(BaseModel):
    """An aircraft observation, tracked from report to close-out."""

    aircraft_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)

    stage = models.CharField(
        max_length=20,
        choices=ObservationStage.choices,
        default=ObservationStage.OPEN,
        db_index=True
    )
    priority = models.CharField(
        max_length=10,
        choices=ObservationPriority.choices,
        default=ObservationPriority.MEDIUM
    )

    reported_by = models.UUIDField()
    assigned_to = models.UUIDField(blank=True, null=True)
    reported_date = models.DateField(default=timezone.localdate)

    resolved_at = models.DateTimeField(blank=True, null=True)
    closed_by = models.UUIDField(blank=True, null=True)
    resolution_comments = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'observations'
        ordering = ['-reported_date', '-created_at']
        indexes = [
            models.Index(fields=['aircraft_id', 'stage']),
        ]

    def __str__(self):
        return f"{self.name} ({self.stage})"

    @property
    def is_closed(self) -> bool:
        return self.stage == ObservationStage.CLOSED
