# apps/core/models/flight_authorization.py
"""
Flight Authorization Model

Pre-flight authorization a student completes for a solo booking and an
instructor approves.
"""

from django.db import models

from shared.common.mixins import BaseModel


class AuthorizationStatus(models.TextChoices):
    """Authorization status choices."""
    DRAFT = 'draft', 'Draft'
    PENDING = 'pending', 'Pending Approval'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    CANCELLED = 'cancelled', 'Cancelled'


class PurposeOfFlight(models.TextChoices):
    TRAINING = 'training', 'Training'
    SOLO = 'solo', 'Solo'
    CHECKRIDE = 'checkride', 'Checkride'
    CROSSCOUNTRY = 'crosscountry', 'Cross Country'
    SCENIC = 'scenic', 'Scenic'
    MAINTENANCE = 'maintenance', 'Maintenance'


class PaymentMethod(models.TextChoices):
    ACCOUNT = 'account', 'Account'
    CREDIT = 'credit', 'Credit Card'
    DEBIT = 'debit', 'Debit Card'
    CASH = 'cash', 'Cash'
    EFTPOS = 'eftpos', 'EFTPOS'


EDITABLE_AUTHORIZATION_STATUSES = (AuthorizationStatus.DRAFT, AuthorizationStatus.REJECTED)
TERMINAL_AUTHORIZATION_STATUSES = (AuthorizationStatus.APPROVED, AuthorizationStatus.CANCELLED)

# Fields only instructors and administrators may read
INSTRUCTOR_ONLY_FIELDS = (
    'instructor_notes',
    'instructor_limitations',
    'student_signature_data',
)


class FlightAuthorization(BaseModel):
    """
    Flight authorization attached to a single booking.

    Draft and rejected authorizations can be edited by the student;
    pending ones wait for an instructor to approve or reject them.
    """

    booking = models.OneToOneField(
        'Booking',
        on_delete=models.CASCADE,
        related_name='flight_authorization'
    )
    student_id = models.UUIDField(db_index=True)
    aircraft_id = models.UUIDField(blank=True, null=True)
    flight_type = models.ForeignKey(
        'FlightType',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='flight_authorizations'
    )
    flight_date = models.DateTimeField(blank=True, null=True)

    status = models.CharField(
        max_length=20,
        choices=AuthorizationStatus.choices,
        default=AuthorizationStatus.DRAFT,
        db_index=True
    )

    # Flight details
    purpose_of_flight = models.CharField(
        max_length=20,
        choices=PurposeOfFlight.choices,
        blank=True,
        null=True
    )
    passenger_names = models.JSONField(default=list, blank=True)
    runway_in_use = models.CharField(max_length=10, blank=True, null=True)
    fuel_level_liters = models.DecimalField(max_digits=7, decimal_places=2, blank=True, null=True)
    oil_level_quarts = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    notams_reviewed = models.BooleanField(default=False)
    weather_briefing_complete = models.BooleanField(default=False)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True,
        null=True
    )

    # Signatures and instructor input
    authorizing_instructor_id = models.UUIDField(blank=True, null=True)
    approving_instructor_id = models.UUIDField(blank=True, null=True)
    student_signature_data = models.TextField(blank=True, null=True)
    student_signed_at = models.DateTimeField(blank=True, null=True)
    instructor_notes = models.TextField(blank=True, null=True)
    instructor_limitations = models.TextField(blank=True, null=True)

    # Workflow timestamps
    submitted_at = models.DateTimeField(blank=True, null=True)
    approved_at = models.DateTimeField(blank=True, null=True)
    rejected_at = models.DateTimeField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    last_autosaved_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'flight_authorizations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student_id', 'status']),
            models.Index(fields=['aircraft_id', 'flight_date']),
        ]

    def __str__(self):
        return f"Authorization for booking {self.booking_id} ({self.status})"

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_AUTHORIZATION_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_AUTHORIZATION_STATUSES

    @property
    def is_approved(self) -> bool:
        return self.status == AuthorizationStatus.APPROVED
