# apps/core/models/booking.py
"""
Booking Model

Aircraft bookings, the flight types they are flown under, and the
authorization override recorded against them.
"""

from django.db import models

from shared.common.mixins import BaseModel


class FlightType(BaseModel):
    """Kind of flight a booking is made for (dual lesson, solo hire, trial)."""

    class InstructionType(models.TextChoices):
        DUAL = 'dual', 'Dual'
        SOLO = 'solo', 'Solo'
        TRIAL = 'trial', 'Trial Flight'
        NONE = 'none', 'No Instruction'

    name = models.CharField(max_length=100)
    code = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True, null=True)
    instruction_type = models.CharField(
        max_length=20,
        choices=InstructionType.choices,
        default=InstructionType.DUAL
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'flight_types'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_solo(self) -> bool:
        return self.instruction_type == self.InstructionType.SOLO


class Booking(BaseModel):
    """
    Aircraft booking.

    The check-out fields are filled when the aircraft is released to the
    pilot. An authorization override lets staff release a solo booking
    that has no approved flight authorization.
    """

    class Status(models.TextChoices):
        UNCONFIRMED = 'unconfirmed', 'Unconfirmed'
        CONFIRMED = 'confirmed', 'Confirmed'
        BRIEFING = 'briefing', 'Briefing'
        FLYING = 'flying', 'Flying'
        COMPLETE = 'complete', 'Complete'
        CANCELLED = 'cancelled', 'Cancelled'

    class BookingType(models.TextChoices):
        FLIGHT = 'flight', 'Flight'
        GROUNDWORK = 'groundwork', 'Groundwork'
        MAINTENANCE = 'maintenance', 'Maintenance'
        OTHER = 'other', 'Other'

    aircraft_id = models.UUIDField(db_index=True)
    user_id = models.UUIDField(blank=True, null=True, db_index=True)
    instructor_id = models.UUIDField(blank=True, null=True, db_index=True)
    flight_type = models.ForeignKey(
        FlightType,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='bookings'
    )

    start_time = models.DateTimeField()
    end_time = models.DateTimeField()

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.UNCONFIRMED,
        db_index=True
    )
    booking_type = models.CharField(
        max_length=20,
        choices=BookingType.choices,
        default=BookingType.FLIGHT
    )
    purpose = models.CharField(max_length=255, blank=True, default='')
    remarks = models.TextField(blank=True, null=True)

    # Check-out
    briefing_completed = models.BooleanField(default=False)
    checked_out_aircraft_id = models.UUIDField(blank=True, null=True)
    checked_out_instructor_id = models.UUIDField(blank=True, null=True)
    checked_out_at = models.DateTimeField(blank=True, null=True)
    hobbs_start = models.DecimalField(max_digits=8, decimal_places=1, blank=True, null=True)
    tach_start = models.DecimalField(max_digits=8, decimal_places=1, blank=True, null=True)
    fuel_on_board = models.DecimalField(max_digits=6, decimal_places=1, blank=True, null=True)
    eta = models.DateTimeField(blank=True, null=True)
    route = models.CharField(max_length=255, blank=True, null=True)
    passengers = models.CharField(max_length=255, blank=True, null=True)

    # Authorization override
    authorization_override = models.BooleanField(default=False)
    authorization_override_by = models.UUIDField(blank=True, null=True)
    authorization_override_at = models.DateTimeField(blank=True, null=True)
    authorization_override_reason = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-start_time']
        indexes = [
            models.Index(fields=['aircraft_id', 'start_time']),
            models.Index(fields=['user_id', 'start_time']),
        ]

    def __str__(self):
        return f"Booking {self.id} ({self.status})"

    @property
    def is_checked_out(self) -> bool:
        return self.status == self.Status.FLYING

    @property
    def is_solo(self) -> bool:
        return (
            self.flight_type is not None and
            self.flight_type.is_solo and
            not self.instructor_id
        )
