# apps/core/services/booking_service.py
"""
Booking Service

Check-out of bookings and the flight authorization gate in front of it.
"""

import uuid
import logging
from typing import Optional, Dict, Any

from django.db import transaction
from django.utils import timezone

from apps.core.models import (
    Booking,
    FlightAuthorization,
    AuthorizationStatus,
    SettingCategory,
)
from . import (
    AuthorizationRequiredError,
    BookingNotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

CHECK_OUT_FIELDS = (
    'checked_out_aircraft_id',
    'checked_out_instructor_id',
    'hobbs_start',
    'tach_start',
    'fuel_on_board',
    'eta',
    'route',
    'passengers',
    'briefing_completed',
)

CHECK_OUT_FROM = (Booking.Status.CONFIRMED, Booking.Status.BRIEFING)


class BookingService:
    """
    Service for booking check-out.

    Solo bookings need an approved flight authorization, or a staff
    override, before they can be checked out. Recording the override and
    checking out are separate calls; check-out can safely be repeated.
    """

    def __init__(self, settings_service: SettingsService = None):
        self.settings_service = settings_service or SettingsService()

    def get_booking(self, booking_id: uuid.UUID) -> Booking:
        try:
            return Booking.objects.select_related('flight_type').get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

    # ==========================================================================
    # Authorization gate
    # ==========================================================================

    def authorization_enabled(self) -> bool:
        return self.settings_service.get_bool(
            SettingCategory.BOOKINGS, 'require_flight_authorization_for_solo', True
        )

    def requires_authorization(self, booking: Booking) -> bool:
        """Solo flight type, no instructor on the booking, and the setting switched on."""
        return booking.is_solo and self.authorization_enabled()

    def get_authorization(self, booking: Booking) -> Optional[FlightAuthorization]:
        return FlightAuthorization.objects.filter(booking=booking).first()

    def is_authorized(self, booking: Booking) -> bool:
        if not self.requires_authorization(booking):
            return True
        if booking.authorization_override:
            return True
        authorization = self.get_authorization(booking)
        return authorization is not None and authorization.status == AuthorizationStatus.APPROVED

    def get_authorization_status(self, booking: Booking) -> Dict[str, Any]:
        authorization = self.get_authorization(booking)
        return {
            'booking_id': str(booking.id),
            'requires_authorization': self.requires_authorization(booking),
            'authorization_id': str(authorization.id) if authorization else None,
            'authorization_status': authorization.status if authorization else None,
            'authorization_override': booking.authorization_override,
            'authorization_override_by': (
                str(booking.authorization_override_by) if booking.authorization_override_by else None
            ),
            'authorization_override_at': booking.authorization_override_at,
            'authorization_override_reason': booking.authorization_override_reason,
            'can_check_out': self.is_authorized(booking),
        }

    # ==========================================================================
    # Override
    # ==========================================================================

    @transaction.atomic
    def override_authorization(self, booking: Booking, user, reason: str) -> Booking:
        """Record a staff override so the booking can be checked out without an authorization."""
        if not getattr(user, 'is_staff_member', False):
            raise PermissionDeniedError('Insufficient permissions')

        reason = (reason or '').strip()
        if not reason:
            raise ValidationError(
                'Override reason is required',
                errors=[{'field': 'reason', 'message': 'Override reason is required'}]
            )

        booking = Booking.objects.select_for_update().get(pk=booking.pk)
        booking.authorization_override = True
        booking.authorization_override_by = user.id
        booking.authorization_override_at = timezone.now()
        booking.authorization_override_reason = reason
        booking.save(update_fields=[
            'authorization_override',
            'authorization_override_by',
            'authorization_override_at',
            'authorization_override_reason',
            'updated_at',
        ])

        logger.info(
            f"Authorization override recorded for booking {booking.id}",
            extra={'booking_id': str(booking.id), 'user_id': str(user.id), 'reason': reason}
        )

        return booking

    @transaction.atomic
    def clear_override(self, booking: Booking, user=None) -> Booking:
        if user is not None and not getattr(user, 'is_staff_member', False):
            raise PermissionDeniedError('Insufficient permissions')

        booking = Booking.objects.select_for_update().get(pk=booking.pk)
        booking.authorization_override = False
        booking.authorization_override_by = None
        booking.authorization_override_at = None
        booking.authorization_override_reason = None
        booking.save(update_fields=[
            'authorization_override',
            'authorization_override_by',
            'authorization_override_at',
            'authorization_override_reason',
            'updated_at',
        ])

        logger.info(f"Authorization override cleared for booking {booking.id}")

        return booking

    # ==========================================================================
    # Check-out
    # ==========================================================================

    @transaction.atomic
    def check_out(self, booking: Booking, user=None, **details) -> Booking:
        """
        Release the aircraft and mark the booking as flying.

        A booking that is already flying is returned unchanged, so a failed
        client can simply retry after recording an override.
        """
        booking = Booking.objects.select_for_update().select_related('flight_type').get(pk=booking.pk)

        if booking.status == Booking.Status.FLYING:
            logger.info(f"Booking {booking.id} already checked out")
            return booking

        if booking.status not in CHECK_OUT_FROM:
            raise StateError(f"Cannot check out a booking that is {booking.status}")

        if not self.is_authorized(booking):
            raise AuthorizationRequiredError(
                'An approved flight authorization or an authorization override is required for solo flights'
            )

        for field in CHECK_OUT_FIELDS:
            if field in details:
                setattr(booking, field, details[field])

        if not booking.checked_out_aircraft_id:
            booking.checked_out_aircraft_id = booking.aircraft_id
        if not booking.checked_out_instructor_id and booking.instructor_id:
            booking.checked_out_instructor_id = booking.instructor_id

        booking.status = Booking.Status.FLYING
        booking.checked_out_at = timezone.now()
        booking.save()

        logger.info(
            f"Booking checked out: {booking.id}",
            extra={
                'booking_id': str(booking.id),
                'aircraft_id': str(booking.checked_out_aircraft_id),
                'user_id': str(user.id) if user is not None else None,
                'override': booking.authorization_override,
            }
        )

        return booking
