# apps/core/services/flight_authorization_service.py
"""
Flight Authorization Service

State machine for flight authorizations:

    draft ──submit──> pending ──approve──> approved
      ^                  │
      │                  └──reject──> rejected ──submit──> pending
      │
    any non-terminal state ──cancel──> cancelled

Submission runs the strict checks; drafts are saved under looser rules.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Optional, Dict, Any

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from apps.core.models import Booking, FlightAuthorization, AuthorizationStatus
from apps.core.validators import (
    AUTHORIZATION_FORM_FIELDS,
    validate_draft,
    validate_for_submission,
)
from . import (
    AuthorizationNotFoundError,
    AuthorizationStateError,
    AuthorizationValidationError,
    ConflictError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)


SUBMIT = 'submit'
APPROVE = 'approve'
REJECT = 'reject'
CANCEL = 'cancel'

# action -> (states it is allowed from, resulting state)
AUTHORIZATION_TRANSITIONS = {
    SUBMIT: (
        {AuthorizationStatus.DRAFT, AuthorizationStatus.REJECTED},
        AuthorizationStatus.PENDING,
    ),
    APPROVE: (
        {AuthorizationStatus.PENDING},
        AuthorizationStatus.APPROVED,
    ),
    REJECT: (
        {AuthorizationStatus.PENDING},
        AuthorizationStatus.REJECTED,
    ),
    CANCEL: (
        {AuthorizationStatus.DRAFT, AuthorizationStatus.PENDING, AuthorizationStatus.REJECTED},
        AuthorizationStatus.CANCELLED,
    ),
}

SAVE_LOCK_KEY = 'flight_authorization:{id}:saving'


def validate_transition(current_status: str, action: str) -> str:
    """
    Check that action is allowed from current_status.

    Returns:
        The status the authorization moves to

    Raises:
        AuthorizationStateError: If the action is unknown or not allowed
    """
    if action not in AUTHORIZATION_TRANSITIONS:
        raise AuthorizationStateError(f"Unknown action: {action}")

    allowed_from, target = AUTHORIZATION_TRANSITIONS[action]
    if current_status not in allowed_from:
        raise AuthorizationStateError(
            f"Cannot {action} a flight authorization that is {current_status}"
        )
    return target


@contextmanager
def draft_save_guard(authorization_id: uuid.UUID):
    """
    Hold the per-authorization save lock for the duration of the block.

    Yields False without blocking if another save already holds it.
    """
    key = SAVE_LOCK_KEY.format(id=authorization_id)
    timeout = settings.FLIGHTDESK.get('AUTOSAVE_LOCK_TIMEOUT', 30)
    acquired = cache.add(key, True, timeout)
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)


def _is_staff(user) -> bool:
    return bool(user is not None and getattr(user, 'is_staff_member', False))


def _is_admin(user) -> bool:
    return bool(user is not None and getattr(user, 'is_admin', False))


def _same_user(user, user_id) -> bool:
    return user is not None and user_id is not None and str(user.id) == str(user_id)


# Written only by instructors, through approve or their own edits
INSTRUCTOR_WRITE_FIELDS = ('instructor_notes', 'instructor_limitations')


def strip_instructor_fields(data: Dict[str, Any], user) -> Dict[str, Any]:
    """Drop instructor-only fields from data unless user is staff."""
    if _is_staff(user):
        return data
    return {key: value for key, value in data.items() if key not in INSTRUCTOR_WRITE_FIELDS}


class FlightAuthorizationService:
    """
    Service for flight authorizations.

    Handles:
    - Creation from a booking
    - Draft saves (manual and autosave share one in-flight lock)
    - Submit, approve, reject and cancel transitions
    """

    def get_authorization(self, authorization_id: uuid.UUID) -> FlightAuthorization:
        try:
            return FlightAuthorization.objects.select_related('booking').get(id=authorization_id)
        except FlightAuthorization.DoesNotExist:
            raise AuthorizationNotFoundError(f"Flight authorization {authorization_id} not found")

    def get_for_booking(self, booking: Booking) -> Optional[FlightAuthorization]:
        return FlightAuthorization.objects.filter(booking=booking).first()

    # ==========================================================================
    # Create / edit
    # ==========================================================================

    @transaction.atomic
    def create_authorization(
        self,
        booking: Booking,
        user=None,
        data: Dict[str, Any] = None
    ) -> FlightAuthorization:
        """
        Create a draft authorization for a booking.

        Student, aircraft, flight type and date are copied from the booking.
        Students may only create one for their own booking.
        """
        if user is not None and not _is_staff(user) and not _same_user(user, booking.user_id):
            raise PermissionDeniedError('You can only create authorizations for your own bookings')

        if FlightAuthorization.objects.filter(booking=booking).exists():
            raise ConflictError('Flight authorization already exists for this booking')

        validated = strip_instructor_fields(self._validate_draft(data or {}), user)

        student_id = booking.user_id or (user.id if user is not None else None)
        if student_id is None:
            raise AuthorizationValidationError(
                'Booking has no student',
                errors=[{'field': 'booking_id', 'message': 'Booking has no student'}]
            )

        authorization = FlightAuthorization.objects.create(
            booking=booking,
            student_id=student_id,
            aircraft_id=booking.aircraft_id,
            flight_type=booking.flight_type,
            flight_date=booking.start_time,
            status=AuthorizationStatus.DRAFT,
            **validated
        )

        logger.info(
            f"Flight authorization created for booking {booking.id}",
            extra={'authorization_id': str(authorization.id), 'booking_id': str(booking.id)}
        )

        return authorization

    def save_draft(
        self,
        authorization: FlightAuthorization,
        data: Dict[str, Any],
        user=None,
        autosave: bool = False
    ) -> FlightAuthorization:
        """
        Save draft fields under the loose rules.

        Raises ConflictError if another save for the same authorization is
        in flight.
        """
        with draft_save_guard(authorization.id) as acquired:
            if not acquired:
                raise ConflictError('A save is already in progress for this authorization')
            return self.apply_draft(authorization, data, user=user, autosave=autosave)

    @transaction.atomic
    def apply_draft(
        self,
        authorization: FlightAuthorization,
        data: Dict[str, Any],
        user=None,
        autosave: bool = False
    ) -> FlightAuthorization:
        """Write draft fields. Callers must hold draft_save_guard."""
        authorization = FlightAuthorization.objects.select_for_update().get(pk=authorization.pk)

        if not authorization.is_editable:
            raise AuthorizationStateError(
                f"Flight authorization is {authorization.status} and cannot be edited"
            )
        if user is not None and not _is_staff(user) and not _same_user(user, authorization.student_id):
            raise PermissionDeniedError('You can only edit your own flight authorizations')

        validated = self._validate_draft(data)
        if user is not None:
            validated = strip_instructor_fields(validated, user)

        for field, value in validated.items():
            setattr(authorization, field, value)

        update_fields = list(validated.keys()) + ['updated_at']
        if autosave:
            authorization.last_autosaved_at = timezone.now()
            update_fields.append('last_autosaved_at')
        authorization.save(update_fields=update_fields)

        logger.debug(
            f"Flight authorization draft saved: {authorization.id}",
            extra={
                'authorization_id': str(authorization.id),
                'fields': sorted(validated.keys()),
                'autosave': autosave,
            }
        )

        return authorization

    # ==========================================================================
    # Transitions
    # ==========================================================================

    @transaction.atomic
    def submit(
        self,
        authorization: FlightAuthorization,
        data: Dict[str, Any] = None,
        user=None
    ) -> FlightAuthorization:
        """
        Submit for instructor approval.

        Optional data is merged over the stored fields first. If the strict
        checks fail nothing is written and the status stays as it was.
        """
        authorization = FlightAuthorization.objects.select_for_update().get(pk=authorization.pk)
        target = validate_transition(authorization.status, SUBMIT)

        if user is not None and not _is_staff(user) and not _same_user(user, authorization.student_id):
            raise PermissionDeniedError('You can only submit your own flight authorizations')

        record = self._form_data(authorization)
        if data:
            changes = self._validate_draft(data)
            if user is not None:
                changes = strip_instructor_fields(changes, user)
            record.update(changes)

        validated, errors = validate_for_submission(record)
        if errors:
            logger.info(
                f"Flight authorization submission failed validation: {authorization.id}",
                extra={'authorization_id': str(authorization.id), 'errors': errors}
            )
            raise AuthorizationValidationError('Flight authorization is incomplete', errors=errors)

        now = timezone.now()
        for field, value in validated.items():
            setattr(authorization, field, value)
        authorization.status = target
        authorization.submitted_at = now
        authorization.student_signed_at = now
        authorization.rejected_at = None
        authorization.rejection_reason = None
        authorization.save()

        logger.info(
            f"Flight authorization submitted: {authorization.id}",
            extra={'authorization_id': str(authorization.id), 'booking_id': str(authorization.booking_id)}
        )

        return authorization

    @transaction.atomic
    def approve(
        self,
        authorization: FlightAuthorization,
        user,
        notes: str = None,
        limitations: str = None
    ) -> FlightAuthorization:
        if not _is_staff(user):
            raise PermissionDeniedError('Only instructors can approve flight authorizations')

        authorization = FlightAuthorization.objects.select_for_update().get(pk=authorization.pk)
        authorization.status = validate_transition(authorization.status, APPROVE)
        authorization.approved_at = timezone.now()
        authorization.approving_instructor_id = user.id
        if notes:
            authorization.instructor_notes = notes
        if limitations:
            authorization.instructor_limitations = limitations
        authorization.save()

        logger.info(
            f"Flight authorization approved: {authorization.id}",
            extra={'authorization_id': str(authorization.id), 'instructor_id': str(user.id)}
        )

        return authorization

    @transaction.atomic
    def reject(self, authorization: FlightAuthorization, user, reason: str) -> FlightAuthorization:
        if not _is_staff(user):
            raise PermissionDeniedError('Only instructors can reject flight authorizations')

        reason = (reason or '').strip()
        if not reason:
            raise AuthorizationValidationError(
                'Rejection reason is required',
                errors=[{'field': 'rejection_reason', 'message': 'Rejection reason is required'}]
            )

        authorization = FlightAuthorization.objects.select_for_update().get(pk=authorization.pk)
        authorization.status = validate_transition(authorization.status, REJECT)
        authorization.rejected_at = timezone.now()
        authorization.rejection_reason = reason
        authorization.approving_instructor_id = user.id
        authorization.save()

        logger.info(
            f"Flight authorization rejected: {authorization.id}",
            extra={'authorization_id': str(authorization.id), 'instructor_id': str(user.id)}
        )

        return authorization

    @transaction.atomic
    def cancel(self, authorization: FlightAuthorization, user=None) -> FlightAuthorization:
        authorization = FlightAuthorization.objects.select_for_update().get(pk=authorization.pk)

        if user is not None and not _is_staff(user) and not _same_user(user, authorization.student_id):
            raise PermissionDeniedError('You can only cancel your own flight authorizations')

        authorization.status = validate_transition(authorization.status, CANCEL)
        authorization.cancelled_at = timezone.now()
        authorization.save(update_fields=['status', 'cancelled_at', 'updated_at'])

        logger.info(f"Flight authorization cancelled: {authorization.id}")

        return authorization

    @transaction.atomic
    def delete_authorization(self, authorization: FlightAuthorization, user) -> None:
        """Approved authorizations are kept; others may be deleted by their student or an admin."""
        if authorization.status == AuthorizationStatus.APPROVED:
            raise AuthorizationStateError('Approved flight authorizations cannot be deleted')
        if not _is_admin(user) and not _same_user(user, authorization.student_id):
            raise PermissionDeniedError('You can only delete your own flight authorizations')

        authorization_id = authorization.id
        authorization.delete()

        logger.info(f"Flight authorization deleted: {authorization_id}")

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _validate_draft(self, data: Dict[str, Any]) -> Dict[str, Any]:
        validated, errors = validate_draft(data)
        if errors:
            raise AuthorizationValidationError('Invalid flight authorization data', errors=errors)
        return dict(validated)

    def _form_data(self, authorization: FlightAuthorization) -> Dict[str, Any]:
        data = {}
        for field in AUTHORIZATION_FORM_FIELDS:
            value = getattr(authorization, field)
            if value is None:
                continue
            data[field] = value
        return data
