# apps/api/views/filters.py
"""
API Filters

Django Filter classes for the flightdesk API.
"""

import django_filters

from apps.core.models import (
    Booking,
    CreditNote,
    CreditNoteStatus,
    FlightAuthorization,
    AuthorizationStatus,
    Invoice,
    InvoiceStatus,
    Membership,
    Observation,
    ObservationStage,
    ObservationPriority,
    Setting,
    SettingCategory,
    Transaction,
    TransactionType,
    TransactionCategory,
)


class InvoiceFilter(django_filters.FilterSet):
    """Filter for invoice queries."""

    status = django_filters.ChoiceFilter(choices=InvoiceStatus.choices)
    status_in = django_filters.BaseInFilter(field_name='status')
    user_id = django_filters.UUIDFilter()
    booking_id = django_filters.UUIDFilter(field_name='booking_id')

    issued_from = django_filters.DateFilter(field_name='issue_date', lookup_expr='gte')
    issued_to = django_filters.DateFilter(field_name='issue_date', lookup_expr='lte')
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='lt')

    outstanding = django_filters.BooleanFilter(method='filter_outstanding')

    class Meta:
        model = Invoice
        fields = ['status', 'user_id', 'reference']

    def filter_outstanding(self, queryset, name, value):
        if value:
            return queryset.filter(balance_due__gt=0).exclude(
                status__in=[InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED]
            )
        return queryset.filter(balance_due__lte=0)


class CreditNoteFilter(django_filters.FilterSet):
    """Filter for credit note queries."""

    status = django_filters.ChoiceFilter(choices=CreditNoteStatus.choices)
    user_id = django_filters.UUIDFilter()
    invoice_id = django_filters.UUIDFilter(field_name='original_invoice_id')
    issued_from = django_filters.DateFilter(field_name='issue_date', lookup_expr='gte')
    issued_to = django_filters.DateFilter(field_name='issue_date', lookup_expr='lte')

    class Meta:
        model = CreditNote
        fields = ['status', 'user_id']


class FlightAuthorizationFilter(django_filters.FilterSet):
    """Filter for flight authorization queries."""

    status = django_filters.ChoiceFilter(choices=AuthorizationStatus.choices)
    student_id = django_filters.UUIDFilter()
    booking_id = django_filters.UUIDFilter(field_name='booking_id')
    aircraft_id = django_filters.UUIDFilter()
    start_date = django_filters.DateFilter(field_name='flight_date', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='flight_date', lookup_expr='date__lte')

    class Meta:
        model = FlightAuthorization
        fields = ['status', 'student_id', 'aircraft_id']


class BookingFilter(django_filters.FilterSet):
    """Filter for booking queries."""

    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    aircraft_id = django_filters.UUIDFilter()
    user_id = django_filters.UUIDFilter()
    instructor_id = django_filters.UUIDFilter()
    date_from = django_filters.DateFilter(field_name='start_time', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='start_time', lookup_expr='date__lte')

    class Meta:
        model = Booking
        fields = ['status', 'booking_type', 'aircraft_id', 'user_id']


class MembershipFilter(django_filters.FilterSet):
    """Filter for membership queries."""

    user_id = django_filters.UUIDFilter()
    membership_type = django_filters.UUIDFilter(field_name='membership_type_id')
    expires_before = django_filters.DateFilter(field_name='expiry_date', lookup_expr='lte')

    class Meta:
        model = Membership
        fields = ['user_id', 'is_active', 'fee_paid', 'auto_renew']


class ObservationFilter(django_filters.FilterSet):
    """Filter for observation queries."""

    aircraft_id = django_filters.UUIDFilter()
    stage = django_filters.ChoiceFilter(choices=ObservationStage.choices)
    priority = django_filters.ChoiceFilter(choices=ObservationPriority.choices)
    open = django_filters.BooleanFilter(method='filter_open')

    class Meta:
        model = Observation
        fields = ['aircraft_id', 'stage', 'priority']

    def filter_open(self, queryset, name, value):
        if value:
            return queryset.exclude(stage=ObservationStage.CLOSED)
        return queryset.filter(stage=ObservationStage.CLOSED)


class SettingFilter(django_filters.FilterSet):
    category = django_filters.ChoiceFilter(choices=SettingCategory.choices)

    class Meta:
        model = Setting
        fields = ['category', 'is_public']


class TransactionFilter(django_filters.FilterSet):
    """Filter for transaction queries."""

    user_id = django_filters.UUIDFilter()
    invoice_id = django_filters.UUIDFilter(field_name='invoice_id')
    transaction_type = django_filters.ChoiceFilter(choices=TransactionType.choices)
    category = django_filters.ChoiceFilter(choices=TransactionCategory.choices)
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Transaction
        fields = ['user_id', 'transaction_type', 'category', 'status']
