# tests/unit/test_invoice_service.py
"""
Unit Tests for Invoice and Transaction Services
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.core.models import (
    Invoice,
    InvoiceStatus,
    SettingCategory,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from apps.core.services import (
    InvoiceService,
    TransactionService,
    InvoiceLockedError,
    InvoiceStateError,
    ValidationError,
)
from apps.core.services.invoice_service import validate_invoice_transition
from apps.core.tasks.invoice_tasks import mark_overdue_invoices


@pytest.mark.django_db
class TestInvoiceDefaults:
    """Tests for settings-driven invoice defaults."""

    def setup_method(self):
        self.service = InvoiceService()

    def test_invoice_number_format(self):
        number = self.service.generate_invoice_number(date(2024, 3, 15))

        assert number == 'INV-2024-03-0001'

    def test_invoice_numbers_are_sequential_per_month(self, create_invoice):
        create_invoice(issue_date=date(2024, 3, 1))
        create_invoice(issue_date=date(2024, 3, 2))

        assert self.service.generate_invoice_number(date(2024, 3, 20)) == 'INV-2024-03-0003'
        assert self.service.generate_invoice_number(date(2024, 4, 1)) == 'INV-2024-04-0001'

    def test_custom_prefix(self, create_setting):
        create_setting(SettingCategory.INVOICING, 'invoice_prefix', 'AERO')

        assert self.service.generate_invoice_number(date(2024, 3, 1)) == 'AERO-2024-03-0001'

    def test_invalid_prefix_falls_back(self, create_setting):
        create_setting(SettingCategory.INVOICING, 'invoice_prefix', 'bad prefix')

        assert self.service.get_invoice_prefix() == 'INV'

    def test_tax_rate_default_and_setting(self, create_setting):
        assert self.service.get_tax_rate() == Decimal('0.15')

        create_setting(SettingCategory.INVOICING, 'default_tax_rate', 0.2)
        assert self.service.get_tax_rate() == Decimal('0.2')

    def test_out_of_range_tax_rate_setting_falls_back(self, create_setting):
        create_setting(SettingCategory.INVOICING, 'default_tax_rate', 15)

        assert self.service.get_tax_rate() == Decimal('0.15')

    @pytest.mark.parametrize('value,expected', [(14, 14), (0, 7), (366, 7), ('soon', 7)])
    def test_due_days(self, create_setting, value, expected):
        create_setting(SettingCategory.INVOICING, 'default_invoice_due_days', value)

        assert self.service.get_default_due_days() == expected


@pytest.mark.django_db
class TestInvoiceService:
    """Tests for invoice creation, items and totals."""

    def setup_method(self):
        self.service = InvoiceService()

    def test_create_invoice_computes_amounts(self, create_invoice):
        invoice = create_invoice()

        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.subtotal == Decimal('200.00')
        assert invoice.tax_total == Decimal('30.00')
        assert invoice.total_amount == Decimal('230.00')
        assert invoice.balance_due == Decimal('230.00')
        assert invoice.due_date == invoice.issue_date + timedelta(days=7)

        item = invoice.items.get()
        assert item.line_total == Decimal('230.00')
        assert item.rate_inclusive == Decimal('115.00')

    def test_draft_invoice_has_no_debit(self, create_invoice):
        invoice = create_invoice()

        assert not Transaction.objects.filter(invoice=invoice).exists()

    def test_invoice_without_items_is_zero(self, create_invoice):
        invoice = create_invoice(items=[])

        assert invoice.subtotal == Decimal('0.00')
        assert invoice.total_amount == Decimal('0.00')

    def test_item_from_tax_inclusive_rate(self, create_invoice):
        invoice = create_invoice(items=[])

        item = self.service.add_item(
            invoice,
            description='Landing fee',
            quantity=Decimal('1'),
            rate_inclusive=Decimal('23.00'),
        )

        assert item.unit_price == Decimal('20.0000')
        assert item.line_total == Decimal('23.00')

    def test_add_item_to_prefetched_invoice_updates_totals(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        invoice = Invoice.objects.prefetch_related('items').get(pk=invoice.pk)
        assert len(invoice.items.all()) == 1

        self.service.add_item(
            invoice,
            description='Landing fee',
            quantity=Decimal('1'),
            unit_price=Decimal('20.00'),
        )

        invoice.refresh_from_db()
        assert invoice.subtotal == Decimal('220.00')
        assert invoice.total_amount == Decimal('253.00')
        assert invoice.balance_due == Decimal('253.00')
        assert TransactionService().find_invoice_debit(invoice).amount == Decimal('253.00')

    def test_update_item_recomputes_only_that_item(self, create_invoice):
        invoice = create_invoice(items=[
            {'description': 'Dual instruction', 'quantity': Decimal('2'), 'unit_price': Decimal('100.00')},
            {'description': 'Landing fee', 'quantity': Decimal('1'), 'unit_price': Decimal('20.00')},
        ])
        first, second = list(invoice.items.order_by('sort_order'))
        second_before = (second.amount, second.tax_amount, second.line_total)

        self.service.update_item(first, quantity=Decimal('3'))

        first.refresh_from_db()
        second.refresh_from_db()
        invoice.refresh_from_db()
        assert first.amount == Decimal('300.00')
        assert (second.amount, second.tax_amount, second.line_total) == second_before
        assert invoice.subtotal == Decimal('320.00')
        assert invoice.total_amount == Decimal('368.00')

    def test_remove_last_item_zeroes_totals(self, create_invoice):
        invoice = create_invoice()

        self.service.remove_item(invoice.items.get())

        invoice.refresh_from_db()
        assert invoice.total_amount == Decimal('0.00')
        assert invoice.balance_due == Decimal('0.00')

    def test_invalid_item_tax_rate(self, create_invoice):
        invoice = create_invoice(items=[])

        with pytest.raises(ValidationError) as exc_info:
            self.service.add_item(invoice, description='X', quantity=1, unit_price=10, tax_rate=Decimal('1.5'))

        assert 'between 0 and 1' in str(exc_info.value)

    def test_paid_invoice_is_locked(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PAID)

        with pytest.raises(InvoiceLockedError, match='paid'):
            self.service.add_item(invoice, description='Extra', quantity=1, unit_price=10)

        with pytest.raises(InvoiceLockedError):
            self.service.update_item(invoice.items.get(), quantity=5)

        with pytest.raises(InvoiceLockedError):
            self.service.update_invoice(invoice, notes='changed')

    def test_cannot_create_cancelled_invoice(self, user_id):
        with pytest.raises(InvoiceStateError):
            self.service.create_invoice(user_id=user_id, status=InvoiceStatus.CANCELLED)

    def test_update_invoice_ignores_status(self, create_invoice):
        invoice = create_invoice()

        invoice = self.service.update_invoice(invoice, status=InvoiceStatus.PAID, notes='Thanks')

        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.notes == 'Thanks'


@pytest.mark.django_db
class TestInvoicePaymentsAndStatus:
    """Tests for payments, status changes and the ledger."""

    def setup_method(self):
        self.service = InvoiceService()
        self.transactions = TransactionService()

    def test_partial_then_full_payment(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        invoice = self.service.record_payment(invoice, Decimal('100.00'))
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.balance_due == Decimal('130.00')
        assert invoice.paid_date is None

        invoice = self.service.record_payment(invoice, Decimal('130.00'), payment_reference='EFT-1')
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.balance_due == Decimal('0.00')
        assert invoice.paid_date == timezone.localdate()

        assert self.transactions.get_account_balance(user_id) == Decimal('0.00')

    def test_payment_past_due_is_overdue(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PENDING, issue_date=date(2024, 1, 1), due_date=date(2024, 1, 8))

        invoice = self.service.record_payment(invoice, Decimal('50.00'), today=date(2024, 2, 1))

        assert invoice.status == InvoiceStatus.OVERDUE

    def test_payment_on_draft_creates_debit(self, create_invoice):
        invoice = create_invoice()

        self.service.record_payment(invoice, Decimal('10.00'))

        assert self.transactions.find_invoice_debit(invoice) is not None

    def test_rejects_payment_on_paid_invoice(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PAID)

        with pytest.raises(InvoiceStateError):
            self.service.record_payment(invoice, Decimal('10.00'))

    def test_rejects_non_positive_payment(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        with pytest.raises(ValidationError):
            self.service.record_payment(invoice, Decimal('0'))

    def test_pending_creates_debit(self, create_invoice, user_id):
        invoice = create_invoice()

        self.service.change_status(invoice, InvoiceStatus.PENDING)

        debit = self.transactions.find_invoice_debit(invoice)
        assert debit.amount == Decimal('230.00')
        assert debit.transaction_type == TransactionType.DEBIT
        assert self.transactions.get_account_balance(user_id) == Decimal('230.00')

    def test_cancel_reverses_debit_once(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        debit = self.transactions.find_invoice_debit(invoice)

        self.service.change_status(invoice, InvoiceStatus.CANCELLED)

        reversal = Transaction.objects.get(reversal_of=debit)
        assert reversal.transaction_type == TransactionType.CREDIT
        assert reversal.category == TransactionCategory.REVERSAL
        assert reversal.amount == debit.amount
        assert reversal.reference_number == f"REV-{invoice.invoice_number}"
        assert self.transactions.get_account_balance(user_id) == Decimal('0.00')

        assert self.transactions.reverse_transaction(debit, 'again') == reversal
        assert Transaction.objects.filter(reversal_of=debit).count() == 1

    def test_reinstating_cancelled_invoice_debits_again(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        self.service.change_status(invoice, InvoiceStatus.CANCELLED)

        self.service.change_status(invoice, InvoiceStatus.PENDING)

        debits = Transaction.objects.filter(invoice=invoice, category=TransactionCategory.INVOICE_DEBIT)
        assert debits.count() == 2
        assert self.transactions.get_account_balance(user_id) == Decimal('230.00')

    def test_debit_follows_item_changes(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        self.service.add_item(invoice, description='Landing fee', quantity=1, unit_price=Decimal('20.00'))

        invoice.refresh_from_db()
        assert self.transactions.find_invoice_debit(invoice).amount == invoice.total_amount == Decimal('253.00')

    def test_paid_invoice_only_moves_to_refunded(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PAID)

        with pytest.raises(InvoiceStateError):
            self.service.change_status(invoice, InvoiceStatus.PENDING)

        invoice = self.service.change_status(invoice, InvoiceStatus.REFUNDED)
        assert invoice.status == InvoiceStatus.REFUNDED

    def test_mark_overdue(self, create_invoice):
        overdue = create_invoice(status=InvoiceStatus.PENDING, issue_date=date(2024, 1, 1), due_date=date(2024, 1, 8))
        current = create_invoice(status=InvoiceStatus.PENDING, issue_date=date(2024, 1, 1), due_date=date(2024, 3, 1))

        count = self.service.mark_overdue_invoices(today=date(2024, 2, 1))

        assert count == 1
        assert Invoice.objects.get(pk=overdue.pk).status == InvoiceStatus.OVERDUE
        assert Invoice.objects.get(pk=current.pk).status == InvoiceStatus.PENDING

    def test_overdue_task(self, create_invoice):
        create_invoice(status=InvoiceStatus.PENDING, issue_date=date(2024, 1, 1), due_date=date(2024, 1, 8))

        assert mark_overdue_invoices() == {'marked_overdue': 1}


class TestInvoiceTransitions:

    @pytest.mark.parametrize('current,new', [
        ('draft', 'pending'),
        ('pending', 'paid'),
        ('pending', 'overdue'),
        ('overdue', 'cancelled'),
        ('cancelled', 'pending'),
        ('paid', 'refunded'),
    ])
    def test_allowed(self, current, new):
        validate_invoice_transition(current, new)

    @pytest.mark.parametrize('current,new', [
        ('draft', 'draft'),
        ('pending', 'draft'),
        ('paid', 'cancelled'),
        ('refunded', 'paid'),
        ('draft', 'refunded'),
    ])
    def test_rejected(self, current, new):
        with pytest.raises(InvoiceStateError):
            validate_invoice_transition(current, new)
