# tests/unit/test_authorization.py
"""
Unit Tests for Flight Authorizations, Draft Autosave and the Check-out Gate
"""

import uuid
from unittest.mock import patch

import pytest

from apps.core.models import AuthorizationStatus, Booking, FlightAuthorization, FlightType, SettingCategory
from apps.core.services import (
    BookingService,
    DraftAutosaveScheduler,
    FlightAuthorizationService,
    AuthorizationRequiredError,
    AuthorizationStateError,
    AuthorizationValidationError,
    ConflictError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from apps.core.services.autosave_service import AutosaveOutcome
from apps.core.services.flight_authorization_service import draft_save_guard, validate_transition
from apps.core.tasks.authorization_tasks import autosave_flight_authorization
from apps.core.validators import validate_draft, validate_for_submission

APPLY_ASYNC = 'apps.core.tasks.authorization_tasks.autosave_flight_authorization.apply_async'


class TestTransitions:
    """Tests for the authorization transition table."""

    @pytest.mark.parametrize('current,action,expected', [
        ('draft', 'submit', 'pending'),
        ('rejected', 'submit', 'pending'),
        ('pending', 'approve', 'approved'),
        ('pending', 'reject', 'rejected'),
        ('draft', 'cancel', 'cancelled'),
        ('pending', 'cancel', 'cancelled'),
        ('rejected', 'cancel', 'cancelled'),
    ])
    def test_allowed(self, current, action, expected):
        assert validate_transition(current, action) == expected

    @pytest.mark.parametrize('current,action', [
        ('draft', 'approve'),
        ('draft', 'reject'),
        ('pending', 'submit'),
        ('approved', 'submit'),
        ('approved', 'cancel'),
        ('cancelled', 'submit'),
        ('rejected', 'approve'),
    ])
    def test_rejected(self, current, action):
        with pytest.raises(AuthorizationStateError):
            validate_transition(current, action)

    def test_unknown_action(self):
        with pytest.raises(AuthorizationStateError, match='Unknown action'):
            validate_transition('draft', 'archive')


class TestValidators:
    """Tests for the submission and draft schemas."""

    def test_complete_form_passes(self, complete_authorization_data):
        validated, errors = validate_for_submission(complete_authorization_data)

        assert errors == []
        assert validated['runway_in_use'] == '01L'

    def test_missing_runway(self, complete_authorization_data):
        data = dict(complete_authorization_data)
        del data['runway_in_use']

        _, errors = validate_for_submission(data)

        assert {'field': 'runway_in_use', 'message': 'Runway information is required'} in errors

    def test_checklist_must_be_ticked(self, complete_authorization_data):
        data = dict(complete_authorization_data, notams_reviewed=False, weather_briefing_complete=False)

        _, errors = validate_for_submission(data)

        messages = {error['field']: error['message'] for error in errors}
        assert messages['notams_reviewed'] == 'NOTAMs must be reviewed before flight authorization'
        assert messages['weather_briefing_complete'] == (
            'Weather briefing must be completed before flight authorization'
        )

    def test_too_many_passengers(self, complete_authorization_data):
        data = dict(complete_authorization_data, passenger_names=['A', 'B', 'C', 'D'])

        _, errors = validate_for_submission(data)

        assert {'field': 'passenger_names', 'message': 'Maximum 3 passengers allowed'} in errors

    def test_draft_accepts_partial_data(self):
        validated, errors = validate_draft({'runway_in_use': '19'})

        assert errors == []
        assert dict(validated) == {'runway_in_use': '19'}

    def test_draft_rejects_wrong_types(self):
        _, errors = validate_draft({'fuel_level_liters': '-5'})

        assert errors == [{'field': 'fuel_level_liters', 'message': 'Fuel level cannot be negative'}]

    def test_draft_ignores_unknown_fields(self):
        validated, errors = validate_draft({'status': 'approved', 'runway_in_use': '19'})

        assert errors == []
        assert 'status' not in validated


@pytest.mark.django_db
class TestFlightAuthorizationService:
    """Tests for FlightAuthorizationService."""

    def setup_method(self):
        self.service = FlightAuthorizationService()

    def test_create_copies_booking(self, create_booking, make_user):
        booking = create_booking()
        student = make_user('student', booking.user_id)

        authorization = self.service.create_authorization(booking, user=student, data={'runway_in_use': '01L'})

        assert authorization.status == AuthorizationStatus.DRAFT
        assert authorization.student_id == booking.user_id
        assert authorization.aircraft_id == booking.aircraft_id
        assert authorization.flight_type == booking.flight_type
        assert authorization.runway_in_use == '01L'

    def test_student_cannot_create_for_other_booking(self, create_booking, student_user):
        with pytest.raises(PermissionDeniedError):
            self.service.create_authorization(create_booking(), user=student_user)

    def test_one_authorization_per_booking(self, create_authorization, instructor_user):
        authorization = create_authorization()

        with pytest.raises(ConflictError):
            self.service.create_authorization(authorization.booking, user=instructor_user)

    def test_student_cannot_write_instructor_fields(self, create_authorization, make_user):
        authorization = create_authorization()
        student = make_user('student', authorization.student_id)

        authorization = self.service.save_draft(
            authorization,
            {'runway_in_use': '19', 'instructor_notes': 'Approved by me'},
            user=student,
        )

        assert authorization.runway_in_use == '19'
        assert authorization.instructor_notes is None

    def test_student_cannot_write_instructor_fields_on_submit(
        self, create_authorization, complete_authorization_data, make_user
    ):
        authorization = create_authorization()
        student = make_user('student', authorization.student_id)
        data = dict(
            complete_authorization_data,
            instructor_notes='Approved by me',
            instructor_limitations='None',
        )

        authorization = self.service.submit(authorization, data=data, user=student)

        authorization.refresh_from_db()
        assert authorization.status == AuthorizationStatus.PENDING
        assert authorization.runway_in_use == '01L'
        assert authorization.instructor_notes is None
        assert authorization.instructor_limitations is None

    def test_instructor_fields_kept_on_staff_submit(
        self, create_authorization, complete_authorization_data, instructor_user
    ):
        authorization = create_authorization()
        data = dict(complete_authorization_data, instructor_notes='Watch the crosswind')

        authorization = self.service.submit(authorization, data=data, user=instructor_user)

        assert authorization.instructor_notes == 'Watch the crosswind'

    def test_submit_incomplete_stays_draft(self, create_authorization, complete_authorization_data):
        data = dict(complete_authorization_data)
        del data['runway_in_use']
        authorization = create_authorization(**data)

        with pytest.raises(AuthorizationValidationError) as exc_info:
            self.service.submit(authorization)

        assert {'field': 'runway_in_use', 'message': 'Runway information is required'} in exc_info.value.errors
        authorization.refresh_from_db()
        assert authorization.status == AuthorizationStatus.DRAFT
        assert authorization.submitted_at is None

    def test_submit_merges_body(self, create_authorization, complete_authorization_data):
        authorization = create_authorization()

        authorization = self.service.submit(authorization, data=complete_authorization_data)

        assert authorization.status == AuthorizationStatus.PENDING
        assert authorization.submitted_at is not None
        assert authorization.student_signed_at == authorization.submitted_at
        assert authorization.runway_in_use == '01L'

    def test_approve(self, create_authorization, complete_authorization_data, instructor_user):
        authorization = create_authorization(status=AuthorizationStatus.PENDING, **complete_authorization_data)

        authorization = self.service.approve(authorization, instructor_user, limitations='Circuits only')

        assert authorization.status == AuthorizationStatus.APPROVED
        assert authorization.approved_at is not None
        assert str(authorization.approving_instructor_id) == instructor_user.id
        assert authorization.instructor_limitations == 'Circuits only'

    def test_student_cannot_approve(self, create_authorization, make_user):
        authorization = create_authorization(status=AuthorizationStatus.PENDING)
        student = make_user('student', authorization.student_id)

        with pytest.raises(PermissionDeniedError):
            self.service.approve(authorization, student)

        authorization.refresh_from_db()
        assert authorization.status == AuthorizationStatus.PENDING

    def test_cannot_approve_draft(self, create_authorization, instructor_user):
        with pytest.raises(AuthorizationStateError):
            self.service.approve(create_authorization(), instructor_user)

    def test_reject_requires_reason(self, create_authorization, instructor_user):
        authorization = create_authorization(status=AuthorizationStatus.PENDING)

        with pytest.raises(AuthorizationValidationError):
            self.service.reject(authorization, instructor_user, '  ')

    def test_reject_then_resubmit(self, create_authorization, complete_authorization_data, instructor_user):
        authorization = create_authorization(status=AuthorizationStatus.PENDING, **complete_authorization_data)

        authorization = self.service.reject(authorization, instructor_user, 'Check the fuel figure')
        assert authorization.status == AuthorizationStatus.REJECTED
        assert authorization.rejection_reason == 'Check the fuel figure'
        assert authorization.is_editable

        authorization = self.service.save_draft(authorization, {'fuel_level_liters': '140.00'})
        authorization = self.service.submit(authorization)

        assert authorization.status == AuthorizationStatus.PENDING
        assert authorization.rejection_reason is None
        assert authorization.rejected_at is None

    def test_approved_is_final(self, create_authorization, instructor_user):
        authorization = create_authorization(status=AuthorizationStatus.APPROVED)

        with pytest.raises(AuthorizationStateError):
            self.service.save_draft(authorization, {'runway_in_use': '19'})

        with pytest.raises(AuthorizationStateError):
            self.service.cancel(authorization, instructor_user)

        with pytest.raises(AuthorizationStateError):
            self.service.delete_authorization(authorization, instructor_user)

    def test_cancel(self, create_authorization, make_user):
        authorization = create_authorization()
        student = make_user('student', authorization.student_id)

        authorization = self.service.cancel(authorization, student)

        assert authorization.status == AuthorizationStatus.CANCELLED
        assert authorization.cancelled_at is not None

    def test_delete_own_draft(self, create_authorization, make_user, student_user):
        authorization = create_authorization()

        with pytest.raises(PermissionDeniedError):
            self.service.delete_authorization(authorization, student_user)

        self.service.delete_authorization(authorization, make_user('student', authorization.student_id))
        assert not FlightAuthorization.objects.filter(pk=authorization.pk).exists()

    def test_save_rejected_while_another_save_runs(self, create_authorization):
        authorization = create_authorization()

        with draft_save_guard(authorization.id) as acquired:
            assert acquired is True
            with pytest.raises(ConflictError):
                self.service.save_draft(authorization, {'runway_in_use': '19'})

        authorization = self.service.save_draft(authorization, {'runway_in_use': '19'})
        assert authorization.runway_in_use == '19'


@pytest.mark.django_db
class TestDraftAutosave:
    """Tests for debounced draft autosave."""

    def setup_method(self):
        self.scheduler = DraftAutosaveScheduler()

    @patch(APPLY_ASYNC)
    def test_schedule_queues_task(self, mock_apply_async, create_authorization):
        authorization = create_authorization()

        token = self.scheduler.schedule(authorization.id, {'runway_in_use': '19'})

        mock_apply_async.assert_called_once_with(
            args=[str(authorization.id), token],
            countdown=self.scheduler.debounce_seconds,
        )
        assert self.scheduler.is_latest(authorization.id, token)

    @patch(APPLY_ASYNC)
    def test_only_latest_edit_is_saved(self, mock_apply_async, create_authorization):
        authorization = create_authorization()
        first = self.scheduler.schedule(authorization.id, {'runway_in_use': '19'})
        second = self.scheduler.schedule(authorization.id, {'runway_in_use': '01L'})

        assert self.scheduler.run(authorization.id, first) == AutosaveOutcome.SUPERSEDED
        assert self.scheduler.run(authorization.id, second) == AutosaveOutcome.SAVED

        authorization.refresh_from_db()
        assert authorization.runway_in_use == '01L'
        assert authorization.last_autosaved_at is not None
        assert not self.scheduler.is_latest(authorization.id, second)

    @patch(APPLY_ASYNC)
    def test_reschedules_while_manual_save_holds_lock(self, mock_apply_async, create_authorization):
        authorization = create_authorization()
        token = self.scheduler.schedule(authorization.id, {'runway_in_use': '19'})
        mock_apply_async.reset_mock()

        with draft_save_guard(authorization.id):
            outcome = self.scheduler.run(authorization.id, token)

        assert outcome == AutosaveOutcome.RESCHEDULED
        mock_apply_async.assert_called_once()
        assert self.scheduler.is_latest(authorization.id, token)

    @patch(APPLY_ASYNC)
    def test_missing_authorization(self, mock_apply_async):
        authorization_id = uuid.uuid4()
        token = self.scheduler.schedule(authorization_id, {'runway_in_use': '19'})

        assert self.scheduler.run(authorization_id, token) == AutosaveOutcome.MISSING

    @patch(APPLY_ASYNC)
    def test_invalid_draft_fails(self, mock_apply_async, create_authorization):
        authorization = create_authorization()
        token = self.scheduler.schedule(authorization.id, {'fuel_level_liters': '-5'})

        assert self.scheduler.run(authorization.id, token) == AutosaveOutcome.FAILED

        authorization.refresh_from_db()
        assert authorization.fuel_level_liters is None

    @patch(APPLY_ASYNC)
    def test_submitted_authorization_is_not_autosaved(self, mock_apply_async, create_authorization):
        authorization = create_authorization(status=AuthorizationStatus.PENDING)
        token = self.scheduler.schedule(authorization.id, {'runway_in_use': '19'})

        assert self.scheduler.run(authorization.id, token) == AutosaveOutcome.FAILED

    @patch(APPLY_ASYNC)
    def test_task_runs_scheduler(self, mock_apply_async, create_authorization):
        authorization = create_authorization()
        token = self.scheduler.schedule(authorization.id, {'runway_in_use': '19'})

        assert autosave_flight_authorization(str(authorization.id), token) == 'saved'

    @patch(APPLY_ASYNC)
    def test_student_autosave_drops_instructor_fields(self, mock_apply_async, create_authorization, make_user):
        authorization = create_authorization()
        student = make_user('student', authorization.student_id)
        token = self.scheduler.schedule(
            authorization.id,
            {'runway_in_use': '19', 'instructor_notes': 'Approved by me', 'instructor_limitations': 'None'},
            user=student,
        )

        assert autosave_flight_authorization(str(authorization.id), token) == 'saved'

        authorization.refresh_from_db()
        assert authorization.runway_in_use == '19'
        assert authorization.instructor_notes is None
        assert authorization.instructor_limitations is None

    @patch(APPLY_ASYNC)
    def test_instructor_autosave_keeps_instructor_fields(self, mock_apply_async, create_authorization, instructor_user):
        authorization = create_authorization()
        token = self.scheduler.schedule(
            authorization.id,
            {'instructor_notes': 'Watch the crosswind'},
            user=instructor_user,
        )

        assert self.scheduler.run(authorization.id, token) == AutosaveOutcome.SAVED

        authorization.refresh_from_db()
        assert authorization.instructor_notes == 'Watch the crosswind'


@pytest.mark.django_db
class TestCheckOutGate:
    """Tests for the solo check-out gate in BookingService."""

    def setup_method(self):
        self.service = BookingService()

    def test_solo_requires_authorization(self, create_booking):
        booking = create_booking()

        assert self.service.requires_authorization(booking) is True
        with pytest.raises(AuthorizationRequiredError):
            self.service.check_out(booking)

        booking.refresh_from_db()
        assert booking.status == Booking.Status.CONFIRMED

    def test_pending_authorization_is_not_enough(self, create_authorization):
        authorization = create_authorization(status=AuthorizationStatus.PENDING)

        with pytest.raises(AuthorizationRequiredError):
            self.service.check_out(authorization.booking)

    def test_approved_authorization_allows_check_out(self, create_authorization, instructor_user):
        authorization = create_authorization(status=AuthorizationStatus.APPROVED)

        booking = self.service.check_out(authorization.booking, instructor_user)

        assert booking.status == Booking.Status.FLYING
        assert booking.checked_out_at is not None
        assert booking.checked_out_aircraft_id == booking.aircraft_id

    def test_dual_booking_is_not_gated(self, create_booking, instructor_id):
        booking = create_booking(instructor_id=instructor_id)

        assert self.service.requires_authorization(booking) is False
        assert self.service.check_out(booking).status == Booking.Status.FLYING

    def test_non_solo_flight_type_is_not_gated(self, create_booking, create_flight_type):
        booking = create_booking(flight_type=create_flight_type(instruction_type=FlightType.InstructionType.DUAL))

        assert self.service.requires_authorization(booking) is False

    def test_setting_switches_gate_off(self, create_booking, create_setting):
        create_setting(SettingCategory.BOOKINGS, 'require_flight_authorization_for_solo', False)
        booking = create_booking()

        assert self.service.requires_authorization(booking) is False
        assert self.service.check_out(booking).status == Booking.Status.FLYING

    def test_override_then_check_out(self, create_booking, instructor_user):
        booking = create_booking()
        with pytest.raises(AuthorizationRequiredError):
            self.service.check_out(booking, instructor_user)

        booking = self.service.override_authorization(booking, instructor_user, 'Briefed in person')
        assert booking.authorization_override is True
        assert str(booking.authorization_override_by) == instructor_user.id

        booking = self.service.check_out(booking, instructor_user, route='Local circuit')
        assert booking.status == Booking.Status.FLYING
        assert booking.route == 'Local circuit'

    def test_check_out_is_idempotent(self, create_authorization):
        authorization = create_authorization(status=AuthorizationStatus.APPROVED)
        first = self.service.check_out(authorization.booking)

        second = self.service.check_out(first)

        assert second.status == Booking.Status.FLYING
        assert second.checked_out_at == first.checked_out_at

    def test_student_cannot_override(self, create_booking, student_user):
        with pytest.raises(PermissionDeniedError):
            self.service.override_authorization(create_booking(), student_user, 'Trust me')

    def test_override_requires_reason(self, create_booking, instructor_user):
        with pytest.raises(ValidationError):
            self.service.override_authorization(create_booking(), instructor_user, '')

    def test_clear_override(self, create_booking, instructor_user):
        booking = self.service.override_authorization(create_booking(), instructor_user, 'Briefed')

        booking = self.service.clear_override(booking, instructor_user)

        assert booking.authorization_override is False
        assert self.service.is_authorized(booking) is False

    def test_cannot_check_out_cancelled_booking(self, create_booking, instructor_id):
        booking = create_booking(status=Booking.Status.CANCELLED, instructor_id=instructor_id)

        with pytest.raises(StateError):
            self.service.check_out(booking)

    def test_authorization_status_summary(self, create_authorization):
        authorization = create_authorization(status=AuthorizationStatus.APPROVED)

        summary = self.service.get_authorization_status(authorization.booking)

        assert summary['requires_authorization'] is True
        assert summary['authorization_status'] == AuthorizationStatus.APPROVED
        assert summary['authorization_id'] == str(authorization.id)
        assert summary['can_check_out'] is True
