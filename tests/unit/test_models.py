# tests/unit/test_models.py
"""
Unit Tests for Flightdesk Models
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from apps.core.models import (
    AuthorizationStatus,
    FlightType,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Setting,
    SettingCategory,
    SettingDataType,
)


@pytest.mark.django_db
class TestInvoiceModels:
    """Tests for Invoice and InvoiceItem."""

    def test_item_save_derives_amounts(self, user_id):
        invoice = Invoice.objects.create(invoice_number='INV-2024-03-0001', user_id=user_id)

        item = InvoiceItem.objects.create(
            invoice=invoice,
            description='Dual instruction',
            quantity=Decimal('2'),
            unit_price=Decimal('100.00'),
            tax_rate=Decimal('0.15'),
        )

        assert item.amount == Decimal('200.00')
        assert item.tax_amount == Decimal('30.00')
        assert item.line_total == Decimal('230.00')
        assert item.rate_inclusive == Decimal('115.00')

    def test_untaxed_item_keeps_unit_price(self, user_id):
        invoice = Invoice.objects.create(invoice_number='INV-2024-03-0002', user_id=user_id)

        item = InvoiceItem.objects.create(
            invoice=invoice,
            description='Exam fee',
            quantity=1,
            unit_price=Decimal('55.50'),
        )

        assert item.tax_amount == Decimal('0.00')
        assert item.rate_inclusive == Decimal('55.50')

    def test_calculate_totals_without_items(self, user_id):
        invoice = Invoice(invoice_number='INV-2024-03-0003', user_id=user_id, total_paid=Decimal('0.00'))

        invoice.calculate_totals()

        assert invoice.total_amount == Decimal('0.00')
        assert invoice.balance_due == Decimal('0.00')

    @pytest.mark.parametrize('invoice_status,editable', [
        (InvoiceStatus.DRAFT, True),
        (InvoiceStatus.PENDING, True),
        (InvoiceStatus.PAID, False),
        (InvoiceStatus.OVERDUE, False),
        (InvoiceStatus.CANCELLED, False),
        (InvoiceStatus.REFUNDED, False),
    ])
    def test_is_editable(self, invoice_status, editable):
        assert Invoice(status=invoice_status).is_editable is editable

    def test_is_overdue(self):
        invoice = Invoice(status=InvoiceStatus.PENDING, due_date=date.today() - timedelta(days=1))

        assert invoice.is_overdue is True
        assert Invoice(status=InvoiceStatus.DRAFT, due_date=date.today() - timedelta(days=1)).is_overdue is False


@pytest.mark.django_db
class TestBookingAndAuthorizationModels:

    def test_solo_booking(self, create_booking, instructor_id):
        assert create_booking().is_solo is True
        assert create_booking(instructor_id=instructor_id).is_solo is False

    def test_dual_flight_type_is_not_solo(self, create_booking, create_flight_type):
        booking = create_booking(flight_type=create_flight_type(instruction_type=FlightType.InstructionType.DUAL))

        assert booking.is_solo is False

    @pytest.mark.parametrize('authorization_status,editable,terminal', [
        (AuthorizationStatus.DRAFT, True, False),
        (AuthorizationStatus.PENDING, False, False),
        (AuthorizationStatus.REJECTED, True, False),
        (AuthorizationStatus.APPROVED, False, True),
        (AuthorizationStatus.CANCELLED, False, True),
    ])
    def test_authorization_flags(self, create_authorization, authorization_status, editable, terminal):
        authorization = create_authorization(status=authorization_status)

        assert authorization.is_editable is editable
        assert authorization.is_terminal is terminal


@pytest.mark.django_db
class TestMembershipModel:

    def test_status_is_derived(self, create_membership):
        membership = create_membership(fee_paid=False, expiry_date=date.today() + timedelta(days=365))

        assert membership.status == 'unpaid'

        membership.fee_paid = True
        assert membership.status == 'active'

        membership.expiry_date = date.today() - timedelta(days=60)
        assert membership.status == 'expired'


class TestSettingModel:

    @pytest.mark.parametrize('data_type,value,matches', [
        (SettingDataType.STRING, 'INV', True),
        (SettingDataType.STRING, 15, False),
        (SettingDataType.NUMBER, 0.15, True),
        (SettingDataType.NUMBER, True, False),
        (SettingDataType.BOOLEAN, False, True),
        (SettingDataType.OBJECT, {'a': 1}, True),
        (SettingDataType.ARRAY, ['a'], True),
        (SettingDataType.ARRAY, 'a', False),
    ])
    def test_value_matches_type(self, data_type, value, matches):
        setting = Setting(
            category=SettingCategory.GENERAL,
            setting_key='sample',
            setting_value=value,
            data_type=data_type,
        )

        assert setting.value_matches_type() is matches

    def test_null_value_only_for_optional_settings(self):
        assert Setting(setting_value=None, is_required=False).value_matches_type() is True
        assert Setting(setting_value=None, is_required=True).value_matches_type() is False
