# apps/core/services/invoice_service.py
"""
Invoice Service

Invoice numbering, line items, totals, payments and status changes.
"""

import re
import uuid
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Dict, Any, List

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.calculations.invoice import (
    InvoiceCalculationError,
    calculate_invoice_status,
    tax_exclusive_rate,
    to_decimal,
    validate_tax_rate,
)
from apps.core.models import Invoice, InvoiceItem, InvoiceStatus, SettingCategory
from apps.core.models.invoice import INVOICE_TRANSITIONS
from . import (
    InvoiceNotFoundError,
    InvoiceLockedError,
    InvoiceStateError,
    ValidationError,
)
from .settings_service import SettingsService
from .transaction_service import TransactionService

logger = logging.getLogger(__name__)

INVOICE_PREFIX_PATTERN = re.compile(r'^[A-Z0-9]+$')
MIN_DUE_DAYS = 1
MAX_DUE_DAYS = 365

# Statuses that carry a live debit on the user's account
DEBITED_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.PAID, InvoiceStatus.OVERDUE)


def validate_invoice_transition(current_status: str, new_status: str) -> None:
    """Raise InvoiceStateError unless current_status may move to new_status."""
    if current_status == new_status:
        raise InvoiceStateError(f"Invoice is already {current_status}")

    allowed = INVOICE_TRANSITIONS.get(current_status, set())
    if new_status not in allowed:
        raise InvoiceStateError(
            f"Cannot change invoice status from {current_status} to {new_status}"
        )


class InvoiceService:
    """
    Service for invoices.

    Handles:
    - Invoice numbering and defaults from settings
    - Line item changes and total recalculation
    - Payments and status changes, with their ledger entries
    """

    def __init__(
        self,
        settings_service: SettingsService = None,
        transaction_service: TransactionService = None
    ):
        self.settings_service = settings_service or SettingsService()
        self.transaction_service = transaction_service or TransactionService()
        self.defaults = settings.FLIGHTDESK

    # ==========================================================================
    # Defaults
    # ==========================================================================

    def get_invoice_prefix(self) -> str:
        default = self.defaults.get('DEFAULT_INVOICE_PREFIX', 'INV')
        prefix = self.settings_service.get_setting_value(
            SettingCategory.INVOICING, 'invoice_prefix', default
        )
        if isinstance(prefix, str) and INVOICE_PREFIX_PATTERN.match(prefix):
            return prefix

        logger.warning(f"Invalid invoice prefix setting {prefix!r}, using {default}")
        return default

    def generate_invoice_number(self, issue_date: date = None) -> str:
        """Next sequential number for the month, e.g. INV-2024-03-0007."""
        prefix = self.get_invoice_prefix()
        issue_date = issue_date or timezone.localdate()
        period = f"{prefix}-{issue_date:%Y-%m}-"

        latest = (
            Invoice.objects.select_for_update()
            .filter(invoice_number__startswith=period)
            .order_by('-invoice_number')
            .values_list('invoice_number', flat=True)
            .first()
        )

        sequence = 1
        if latest:
            try:
                sequence = int(latest.rsplit('-', 1)[1]) + 1
            except (IndexError, ValueError):
                sequence = Invoice.objects.filter(invoice_number__startswith=period).count() + 1

        return f"{period}{sequence:04d}"

    def get_tax_rate(self) -> Decimal:
        fallback = self.defaults.get('DEFAULT_TAX_RATE', '0.15')
        value = self.settings_service.get_setting_value(
            SettingCategory.INVOICING, 'default_tax_rate', fallback
        )
        try:
            return validate_tax_rate(value)
        except InvoiceCalculationError:
            logger.warning(f"Invalid default_tax_rate setting {value!r}, using {fallback}")
            return Decimal(str(fallback))

    def get_default_due_days(self) -> int:
        default = self.defaults.get('DEFAULT_INVOICE_DUE_DAYS', 7)
        value = self.settings_service.get_setting_value(
            SettingCategory.INVOICING, 'default_invoice_due_days', default
        )
        try:
            days = int(value)
        except (TypeError, ValueError):
            days = None

        if days is None or days < MIN_DUE_DAYS or days > MAX_DUE_DAYS:
            logger.warning(f"Invalid default_invoice_due_days value {value!r}, using {default}")
            return default
        return days

    def get_default_due_date(self, issue_date: date = None) -> date:
        issue_date = issue_date or timezone.localdate()
        return issue_date + timedelta(days=self.get_default_due_days())

    # ==========================================================================
    # Invoice CRUD
    # ==========================================================================

    def get_invoice(self, invoice_id: uuid.UUID) -> Invoice:
        try:
            return Invoice.objects.get(id=invoice_id)
        except Invoice.DoesNotExist:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")

    @transaction.atomic
    def create_invoice(
        self,
        user_id: uuid.UUID,
        items: List[Dict[str, Any]] = None,
        status: str = InvoiceStatus.DRAFT,
        created_by: uuid.UUID = None,
        tax_rate: Decimal = None,
        issue_date: date = None,
        due_date: date = None,
        **kwargs
    ) -> Invoice:
        """
        Create an invoice with optional line items.

        Items are dicts with description, quantity, unit_price and an
        optional tax_rate (defaults to the invoice's rate). Invoices
        created as pending or paid are debited straight away.
        """
        if status not in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING, InvoiceStatus.PAID):
            raise InvoiceStateError(f"Invoices cannot be created as {status}")

        issue_date = issue_date or timezone.localdate()
        invoice_tax_rate = self._validated_rate(tax_rate) if tax_rate is not None else self.get_tax_rate()

        invoice = Invoice.objects.create(
            invoice_number=self.generate_invoice_number(issue_date),
            user_id=user_id,
            status=status,
            issue_date=issue_date,
            due_date=due_date or self.get_default_due_date(issue_date),
            paid_date=issue_date if status == InvoiceStatus.PAID else None,
            tax_rate=invoice_tax_rate,
            created_by=created_by,
            **kwargs
        )

        for index, item_data in enumerate(items or []):
            item_data = dict(item_data)
            item_data.setdefault('sort_order', index)
            self._build_item(invoice, item_data).save()

        self.update_invoice_totals(invoice)

        if status in (InvoiceStatus.PENDING, InvoiceStatus.PAID):
            self.transaction_service.create_invoice_debit(invoice)

        logger.info(
            f"Invoice created: {invoice.invoice_number}",
            extra={
                'invoice_id': str(invoice.id),
                'user_id': str(user_id),
                'status': status,
                'total_amount': str(invoice.total_amount),
            }
        )

        return invoice

    @transaction.atomic
    def update_invoice(self, invoice: Invoice, **fields) -> Invoice:
        """Update header fields. Status changes go through change_status."""
        self._ensure_editable(invoice)
        fields.pop('status', None)

        if 'tax_rate' in fields:
            fields['tax_rate'] = self._validated_rate(fields['tax_rate'])

        for field, value in fields.items():
            setattr(invoice, field, value)
        invoice.save()

        return invoice

    # ==========================================================================
    # Line items
    # ==========================================================================

    @transaction.atomic
    def add_item(self, invoice: Invoice, **item_data) -> InvoiceItem:
        self._ensure_editable(invoice)

        if 'sort_order' not in item_data:
            item_data['sort_order'] = invoice.items.count()

        item = self._build_item(invoice, item_data)
        item.save()
        self.update_invoice_totals(invoice)

        logger.info(
            f"Item added to invoice {invoice.invoice_number}",
            extra={'invoice_id': str(invoice.id), 'item_id': str(item.id), 'line_total': str(item.line_total)}
        )

        return item

    @transaction.atomic
    def update_item(self, item: InvoiceItem, **fields) -> InvoiceItem:
        """Update one item; only that item's amounts are recomputed."""
        invoice = item.invoice
        self._ensure_editable(invoice)

        for field in ('description', 'chargeable_reference', 'quantity', 'unit_price', 'tax_rate', 'sort_order'):
            if field in fields:
                setattr(item, field, fields[field])

        if 'rate_inclusive' in fields and 'unit_price' not in fields:
            item.unit_price = self._exclusive_price(fields['rate_inclusive'], item.tax_rate)

        self._apply_item_amounts(item)
        item.save()
        self.update_invoice_totals(invoice)

        return item

    @transaction.atomic
    def remove_item(self, item: InvoiceItem) -> None:
        invoice = item.invoice
        self._ensure_editable(invoice)

        item.delete()
        self.update_invoice_totals(invoice)

    def update_invoice_totals(self, invoice: Invoice) -> Invoice:
        """Recalculate totals from the saved items and keep the debit in step."""
        invoice.calculate_totals()
        invoice.save(update_fields=[
            'subtotal', 'tax_total', 'total_amount', 'balance_due', 'updated_at'
        ])

        if invoice.status in DEBITED_STATUSES:
            debit = self.transaction_service.find_invoice_debit(invoice)
            if debit and debit.amount != invoice.total_amount:
                debit.amount = invoice.total_amount
                debit.save(update_fields=['amount', 'updated_at'])

        return invoice

    # ==========================================================================
    # Payments and status
    # ==========================================================================

    @transaction.atomic
    def record_payment(
        self,
        invoice: Invoice,
        amount: Decimal,
        payment_reference: str = None,
        today: date = None
    ) -> Invoice:
        """
        Apply a payment and derive the new status from the amounts.

        A payment that clears the balance marks the invoice paid.
        """
        invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)

        if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED):
            raise InvoiceStateError(f"Cannot record a payment on a {invoice.status} invoice")

        try:
            payment = to_decimal(amount, 'payment amount')
        except InvoiceCalculationError as e:
            raise ValidationError(str(e), errors=[{'field': 'amount', 'message': str(e)}])
        if payment <= 0:
            raise ValidationError(
                'Payment amount must be greater than zero',
                errors=[{'field': 'amount', 'message': 'Payment amount must be greater than zero'}]
            )

        today = today or timezone.localdate()
        old_status = invoice.status

        invoice.total_paid = invoice.total_paid + payment
        invoice.balance_due = invoice.total_amount - invoice.total_paid
        invoice.status = calculate_invoice_status(
            invoice.total_amount,
            invoice.total_paid,
            invoice.due_date,
            invoice.paid_date,
            today=today,
        )
        if invoice.total_paid >= invoice.total_amount and not invoice.paid_date:
            invoice.paid_date = today
        invoice.save()

        self._apply_ledger_changes(invoice, old_status, invoice.status)
        self._sync_memberships(invoice)
        self.transaction_service.create_payment_credit(invoice, payment, payment_reference)

        logger.info(
            f"Payment recorded on invoice {invoice.invoice_number}",
            extra={
                'invoice_id': str(invoice.id),
                'amount': str(payment),
                'old_status': old_status,
                'new_status': invoice.status,
            }
        )

        return invoice

    @transaction.atomic
    def change_status(self, invoice: Invoice, new_status: str, user_id: uuid.UUID = None) -> Invoice:
        invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
        old_status = invoice.status

        validate_invoice_transition(old_status, new_status)

        invoice.status = new_status
        if new_status == InvoiceStatus.PAID and not invoice.paid_date:
            invoice.paid_date = timezone.localdate()
        invoice.save(update_fields=['status', 'paid_date', 'updated_at'])

        self._apply_ledger_changes(invoice, old_status, new_status)
        self._sync_memberships(invoice)

        logger.info(
            f"Invoice {invoice.invoice_number} status changed: {old_status} -> {new_status}",
            extra={
                'invoice_id': str(invoice.id),
                'old_status': old_status,
                'new_status': new_status,
                'user_id': str(user_id) if user_id else None,
            }
        )

        return invoice

    @transaction.atomic
    def mark_overdue_invoices(self, today: date = None) -> int:
        """Move pending invoices past their due date to overdue."""
        today = today or timezone.localdate()
        count = Invoice.objects.filter(
            status=InvoiceStatus.PENDING,
            due_date__lt=today,
        ).update(status=InvoiceStatus.OVERDUE, updated_at=timezone.now())

        if count:
            logger.info(f"Marked {count} invoices overdue", extra={'count': count, 'date': str(today)})

        return count

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _apply_ledger_changes(self, invoice: Invoice, old_status: str, new_status: str) -> None:
        was_debited = old_status in DEBITED_STATUSES
        is_debited = new_status in DEBITED_STATUSES

        if not was_debited and is_debited:
            self.transaction_service.create_invoice_debit(invoice)
        elif was_debited and new_status == InvoiceStatus.CANCELLED:
            debit = self.transaction_service.find_invoice_debit(invoice)
            if debit:
                self.transaction_service.reverse_transaction(debit, 'Invoice cancelled')
            else:
                logger.warning(f"No debit transaction found for cancelled invoice {invoice.invoice_number}")

    def _sync_memberships(self, invoice: Invoice) -> None:
        """Memberships billed on this invoice count as paid once it is paid."""
        if invoice.status != InvoiceStatus.PAID:
            return
        updated = invoice.memberships.filter(fee_paid=False).update(
            fee_paid=True,
            amount_paid=invoice.total_paid or invoice.total_amount,
            updated_at=timezone.now(),
        )
        if updated:
            logger.info(f"Marked {updated} memberships paid from invoice {invoice.invoice_number}")

    def _ensure_editable(self, invoice: Invoice) -> None:
        if invoice.status == InvoiceStatus.PAID:
            raise InvoiceLockedError(f"Invoice {invoice.invoice_number} is paid and cannot be modified")
        if not invoice.is_editable:
            raise InvoiceLockedError(
                f"Invoice {invoice.invoice_number} is {invoice.status} and cannot be modified"
            )

    def _validated_rate(self, tax_rate) -> Decimal:
        try:
            return validate_tax_rate(tax_rate)
        except InvoiceCalculationError as e:
            raise ValidationError(str(e), errors=[{'field': 'tax_rate', 'message': str(e)}])

    def _exclusive_price(self, rate_inclusive, tax_rate) -> Decimal:
        rate = self._validated_rate(tax_rate)
        try:
            return tax_exclusive_rate(rate_inclusive, rate)
        except InvoiceCalculationError as e:
            raise ValidationError(str(e), errors=[{'field': 'rate_inclusive', 'message': str(e)}])

    def _build_item(self, invoice: Invoice, item_data: Dict[str, Any]) -> InvoiceItem:
        data = dict(item_data)
        tax_rate = data.pop('tax_rate', None)
        if tax_rate is None:
            tax_rate = invoice.tax_rate

        rate_inclusive = data.pop('rate_inclusive', None)
        if data.get('unit_price') is None and rate_inclusive is not None:
            data['unit_price'] = self._exclusive_price(rate_inclusive, tax_rate)

        item = InvoiceItem(invoice=invoice, tax_rate=tax_rate, **data)
        self._apply_item_amounts(item)
        return item

    def _apply_item_amounts(self, item: InvoiceItem) -> None:
        try:
            item.apply_amounts()
        except InvoiceCalculationError as e:
            raise ValidationError(str(e), errors=[{'field': 'items', 'message': str(e)}])
