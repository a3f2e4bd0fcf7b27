# tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for flightdesk tests.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from shared.common.authentication import TokenUser


@pytest.fixture(autouse=True)
def clear_cache():
    """Settings values and autosave state live in the cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


@pytest.fixture
def user_id():
    """Provide a test user ID."""
    return uuid.uuid4()


@pytest.fixture
def aircraft_id():
    """Provide a test aircraft ID."""
    return uuid.uuid4()


@pytest.fixture
def instructor_id():
    """Provide a test instructor ID."""
    return uuid.uuid4()


def _token_user(role, user_id=None):
    return TokenUser({
        'sub': str(user_id or uuid.uuid4()),
        'email': f"{role}@example.com",
        'username': role,
        'roles': [role],
    })


@pytest.fixture
def student_user():
    return _token_user('student')


@pytest.fixture
def member_user():
    return _token_user('member')


@pytest.fixture
def instructor_user():
    return _token_user('instructor')


@pytest.fixture
def admin_user():
    return _token_user('admin')


@pytest.fixture
def make_user():
    """Factory fixture for token users with a given role."""
    return _token_user


@pytest.fixture
def student_client(student_user):
    client = APIClient()
    client.force_authenticate(user=student_user)
    return client


@pytest.fixture
def member_client(member_user):
    client = APIClient()
    client.force_authenticate(user=member_user)
    return client


@pytest.fixture
def instructor_client(instructor_user):
    client = APIClient()
    client.force_authenticate(user=instructor_user)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def create_flight_type():
    """Factory fixture for creating flight types."""
    from apps.core.models import FlightType

    def _create_flight_type(**kwargs):
        defaults = {
            'name': 'Solo Hire',
            'code': f"SOLO-{uuid.uuid4().hex[:6]}",
            'instruction_type': FlightType.InstructionType.SOLO,
        }
        defaults.update(kwargs)

        return FlightType.objects.create(**defaults)

    return _create_flight_type


@pytest.fixture
def create_booking(aircraft_id, create_flight_type):
    """Factory fixture for creating bookings; solo and confirmed by default."""
    from apps.core.models import Booking

    def _create_booking(**kwargs):
        start = timezone.now() + timedelta(days=1)
        defaults = {
            'aircraft_id': aircraft_id,
            'user_id': uuid.uuid4(),
            'start_time': start,
            'end_time': start + timedelta(hours=2),
            'status': Booking.Status.CONFIRMED,
        }
        defaults.update(kwargs)
        if 'flight_type' not in defaults:
            defaults['flight_type'] = create_flight_type()

        return Booking.objects.create(**defaults)

    return _create_booking


@pytest.fixture
def complete_authorization_data(instructor_id):
    """Form fields that pass the submission checks."""
    return {
        'purpose_of_flight': 'solo',
        'passenger_names': [],
        'runway_in_use': '01L',
        'fuel_level_liters': '120.00',
        'oil_level_quarts': '6.00',
        'notams_reviewed': True,
        'weather_briefing_complete': True,
        'payment_method': 'account',
        'authorizing_instructor_id': str(instructor_id),
        'student_signature_data': 'data:image/png;base64,iVBORw0KGgo=',
    }


@pytest.fixture
def create_authorization(create_booking):
    """Factory fixture for creating flight authorizations."""
    from apps.core.models import FlightAuthorization, AuthorizationStatus

    def _create_authorization(booking=None, **kwargs):
        booking = booking or create_booking()
        defaults = {
            'booking': booking,
            'student_id': booking.user_id,
            'aircraft_id': booking.aircraft_id,
            'flight_type': booking.flight_type,
            'flight_date': booking.start_time,
            'status': AuthorizationStatus.DRAFT,
        }
        defaults.update(kwargs)

        return FlightAuthorization.objects.create(**defaults)

    return _create_authorization


@pytest.fixture
def create_invoice(user_id):
    """Factory fixture for creating invoices through the service."""
    from apps.core.services import InvoiceService

    def _create_invoice(items=None, **kwargs):
        defaults = {
            'user_id': user_id,
            'tax_rate': Decimal('0.15'),
        }
        defaults.update(kwargs)
        if items is None:
            items = [{'description': 'Dual instruction', 'quantity': Decimal('2'), 'unit_price': Decimal('100.00')}]

        return InvoiceService().create_invoice(items=items, **defaults)

    return _create_invoice


@pytest.fixture
def create_membership_type():
    """Factory fixture for creating membership types."""
    from apps.core.models import MembershipType, MembershipTypeCode

    def _create_membership_type(**kwargs):
        defaults = {
            'name': 'Flying Member',
            'code': MembershipTypeCode.FLYING_MEMBER,
            'price': Decimal('115.00'),
            'duration_months': 12,
            'benefits': ['Aircraft hire', 'Club events'],
        }
        defaults.update(kwargs)

        return MembershipType.objects.create(**defaults)

    return _create_membership_type


@pytest.fixture
def create_membership(user_id, create_membership_type):
    """Factory fixture for creating memberships directly."""
    from apps.core.models import Membership, MembershipType, MembershipTypeCode

    def _create_membership(**kwargs):
        today = date.today()
        defaults = {
            'user_id': user_id,
            'start_date': today - timedelta(days=30),
            'expiry_date': today + timedelta(days=335),
            'fee_paid': True,
            'is_active': True,
        }
        defaults.update(kwargs)
        if 'membership_type' not in defaults:
            defaults['membership_type'] = (
                MembershipType.objects.filter(code=MembershipTypeCode.FLYING_MEMBER).first()
                or create_membership_type()
            )

        return Membership.objects.create(**defaults)

    return _create_membership


@pytest.fixture
def create_observation(aircraft_id, user_id):
    """Factory fixture for creating observations."""
    from apps.core.models import Observation

    def _create_observation(**kwargs):
        defaults = {
            'aircraft_id': aircraft_id,
            'name': 'Left brake soft',
            'reported_by': user_id,
        }
        defaults.update(kwargs)

        return Observation.objects.create(**defaults)

    return _create_observation


@pytest.fixture
def create_setting():
    """Factory fixture for settings, written through the service so the cache is dropped."""
    from apps.core.services import SettingsService

    def _create_setting(category, key, value, **kwargs):
        return SettingsService().set_setting(category, key, value, **kwargs)

    return _create_setting
