# apps/core/services/credit_note_service.py
"""
Credit Note Service

Credit notes correct issued invoices. They are created as drafts, can be
edited or soft deleted while draft, and credit the user's account when
applied.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Dict, Any, List, Tuple

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.core.calculations.invoice import (
    InvoiceCalculationError,
    calculate_item_amounts,
    calculate_invoice_totals,
    to_decimal,
)
from apps.core.models import (
    CreditNote,
    CreditNoteItem,
    CreditNoteStatus,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
)
from . import (
    CreditNoteNotFoundError,
    CreditNoteStateError,
    ValidationError,
)
from .transaction_service import TransactionService

logger = logging.getLogger(__name__)

CREDIT_NOTE_PREFIX = 'CN'

# Invoices that can be credited. Drafts are edited directly and a
# cancelled invoice's debit is already reversed.
CREDITABLE_INVOICE_STATUSES = (
    InvoiceStatus.PENDING,
    InvoiceStatus.PAID,
    InvoiceStatus.OVERDUE,
    InvoiceStatus.REFUNDED,
)

# Credit notes counted against the invoice total
OPEN_CREDIT_NOTE_STATUSES = (CreditNoteStatus.DRAFT, CreditNoteStatus.APPLIED)


class CreditNoteService:
    """
    Service for credit notes.

    Handles:
    - Numbering and creation against an issued invoice
    - Draft edits and soft deletion
    - Applying a credit note to the user's account
    """

    def __init__(self, transaction_service: TransactionService = None):
        self.transaction_service = transaction_service or TransactionService()

    def generate_credit_note_number(self, issue_date: date = None) -> str:
        """Next sequential number for the month, e.g. CN-2024-03-0002."""
        issue_date = issue_date or timezone.localdate()
        period = f"{CREDIT_NOTE_PREFIX}-{issue_date:%Y-%m}-"

        latest = (
            CreditNote.all_objects.select_for_update()
            .filter(credit_note_number__startswith=period)
            .order_by('-credit_note_number')
            .values_list('credit_note_number', flat=True)
            .first()
        )

        sequence = 1
        if latest:
            try:
                sequence = int(latest.rsplit('-', 1)[1]) + 1
            except (IndexError, ValueError):
                sequence = CreditNote.all_objects.filter(credit_note_number__startswith=period).count() + 1

        return f"{period}{sequence:04d}"

    def get_credit_note(self, credit_note_id: uuid.UUID) -> CreditNote:
        try:
            return CreditNote.objects.get(id=credit_note_id)
        except CreditNote.DoesNotExist:
            raise CreditNoteNotFoundError(f"Credit note {credit_note_id} not found")

    def get_credit_notes_for_invoice(self, invoice: Invoice) -> List[CreditNote]:
        return list(CreditNote.objects.filter(original_invoice=invoice).order_by('-created_at'))

    def get_credited_total(self, invoice: Invoice) -> Decimal:
        """Sum of draft and applied credit notes raised against invoice."""
        total = CreditNote.objects.filter(
            original_invoice=invoice,
            status__in=OPEN_CREDIT_NOTE_STATUSES,
        ).aggregate(total=Sum('total_amount'))['total']
        return total or Decimal('0.00')

    @transaction.atomic
    def create_credit_note(
        self,
        invoice: Invoice,
        user_id: uuid.UUID,
        reason: str,
        items: List[Dict[str, Any]],
        notes: str = None,
        created_by: uuid.UUID = None,
    ) -> CreditNote:
        """
        Create a draft credit note against an issued invoice.

        Items are dicts with description, quantity, unit_price, an optional
        tax_rate (defaults to the invoice's rate) and an optional
        original_invoice_item_id. Open credit notes on an invoice may not
        add up to more than its total.
        """
        invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)

        if invoice.status == InvoiceStatus.DRAFT:
            raise CreditNoteStateError(
                'Cannot create credit note for draft invoice. Edit the invoice directly instead.'
            )
        if invoice.status not in CREDITABLE_INVOICE_STATUSES:
            raise CreditNoteStateError(f"Cannot create credit note for {invoice.status} invoice")

        if str(invoice.user_id) != str(user_id):
            raise ValidationError(
                'User ID does not match invoice user',
                errors=[{'field': 'user_id', 'message': 'User ID does not match invoice user'}]
            )
        if not reason or not reason.strip():
            raise ValidationError(
                'Reason is required',
                errors=[{'field': 'reason', 'message': 'Reason is required'}]
            )

        lines = self._prepare_items(invoice, items)
        totals = calculate_invoice_totals(amounts for _, amounts in lines)

        credited = self.get_credited_total(invoice)
        if credited + totals.total_amount > invoice.total_amount:
            message = (
                f"Credit notes for invoice {invoice.invoice_number} cannot exceed its total "
                f"of {invoice.total_amount} ({credited} already credited)"
            )
            raise ValidationError(message, errors=[{'field': 'items', 'message': message}])

        issue_date = timezone.localdate()
        credit_note = CreditNote.objects.create(
            credit_note_number=self.generate_credit_note_number(issue_date),
            original_invoice=invoice,
            user_id=invoice.user_id,
            reason=reason.strip(),
            notes=notes or None,
            issue_date=issue_date,
            created_by=created_by,
        )

        for data, _ in lines:
            CreditNoteItem.objects.create(credit_note=credit_note, **data)

        credit_note.calculate_totals()
        credit_note.save(update_fields=['subtotal', 'tax_total', 'total_amount', 'updated_at'])

        logger.info(
            f"Credit note created: {credit_note.credit_note_number}",
            extra={
                'credit_note_id': str(credit_note.id),
                'invoice_id': str(invoice.id),
                'total_amount': str(credit_note.total_amount),
            }
        )

        return credit_note

    @transaction.atomic
    def update_draft(self, credit_note: CreditNote, reason: str = None, notes: str = None) -> CreditNote:
        """Only reason and notes can change, and only on drafts."""
        credit_note = self._locked(credit_note)
        self._ensure_draft(credit_note, 'updated')

        if reason is None and notes is None:
            raise ValidationError(
                'No updatable fields provided',
                errors=[{'field': 'non_field_errors', 'message': 'No updatable fields provided'}]
            )

        if reason is not None:
            if not reason.strip():
                raise ValidationError(
                    'Reason is required',
                    errors=[{'field': 'reason', 'message': 'Reason is required'}]
                )
            credit_note.reason = reason.strip()
        if notes is not None:
            credit_note.notes = notes or None

        credit_note.save(update_fields=['reason', 'notes', 'updated_at'])
        return credit_note

    @transaction.atomic
    def apply_credit_note(self, credit_note: CreditNote, applied_by: uuid.UUID = None) -> CreditNote:
        """Credit the user's account with the note's total."""
        credit_note = self._locked(credit_note)
        self._ensure_draft(credit_note, 'applied')

        credit = self.transaction_service.create_credit_note_credit(credit_note)

        credit_note.status = CreditNoteStatus.APPLIED
        credit_note.applied_date = timezone.localdate()
        credit_note.applied_by = applied_by
        credit_note.credit_transaction = credit
        credit_note.save(update_fields=[
            'status', 'applied_date', 'applied_by', 'credit_transaction', 'updated_at'
        ])

        logger.info(
            f"Credit note applied: {credit_note.credit_note_number}",
            extra={
                'credit_note_id': str(credit_note.id),
                'transaction_id': str(credit.id),
                'amount': str(credit_note.total_amount),
            }
        )

        return credit_note

    @transaction.atomic
    def soft_delete(
        self,
        credit_note: CreditNote,
        deleted_by: uuid.UUID = None,
        reason: str = 'User initiated deletion'
    ) -> Tuple[CreditNote, int]:
        """
        Soft delete a draft credit note and its items.

        Returns:
            The credit note and the number of items marked deleted
        """
        credit_note = self._locked(credit_note)
        self._ensure_draft(credit_note, 'deleted')

        credit_note.status = CreditNoteStatus.CANCELLED
        credit_note.deleted_at = timezone.now()
        credit_note.deleted_by = deleted_by
        credit_note.deletion_reason = reason
        credit_note.save(update_fields=['status', 'deleted_at', 'deleted_by', 'deletion_reason', 'updated_at'])

        items_deleted = credit_note.items.count()

        logger.info(
            f"Credit note deleted: {credit_note.credit_note_number}",
            extra={'credit_note_id': str(credit_note.id), 'reason': reason, 'items': items_deleted}
        )

        return credit_note, items_deleted

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _locked(self, credit_note: CreditNote) -> CreditNote:
        try:
            return CreditNote.objects.select_for_update().get(pk=credit_note.pk)
        except CreditNote.DoesNotExist:
            raise CreditNoteNotFoundError(f"Credit note {credit_note.pk} not found")

    def _ensure_draft(self, credit_note: CreditNote, action: str) -> None:
        if not credit_note.is_draft:
            raise CreditNoteStateError(
                f"Only draft credit notes can be {action}; {credit_note.credit_note_number} is {credit_note.status}"
            )

    def _prepare_items(self, invoice: Invoice, items: List[Dict[str, Any]]):
        """Validate item input and pair each row with its calculated amounts."""
        if not items:
            raise ValidationError(
                'Credit note must have at least one item',
                errors=[{'field': 'items', 'message': 'Credit note must have at least one item'}]
            )

        lines = []
        errors = []
        for index, item in enumerate(items):
            field = f"items[{index}]"
            description = (item.get('description') or '').strip()
            if not description:
                errors.append({'field': f"{field}.description", 'message': 'Each item must have a description'})
                continue

            try:
                quantity = to_decimal(item.get('quantity', 1), 'quantity')
                if quantity <= 0:
                    raise InvoiceCalculationError('Item quantity must be greater than zero')
                tax_rate = item.get('tax_rate')
                if tax_rate is None:
                    tax_rate = invoice.tax_rate
                amounts = calculate_item_amounts(quantity, item.get('unit_price'), tax_rate)
            except InvoiceCalculationError as e:
                errors.append({'field': field, 'message': str(e)})
                continue

            original_item = self._original_item(invoice, item.get('original_invoice_item_id'))
            if item.get('original_invoice_item_id') and original_item is None:
                errors.append({
                    'field': f"{field}.original_invoice_item_id",
                    'message': 'Item does not belong to the original invoice',
                })
                continue

            lines.append(({
                'description': description,
                'quantity': quantity,
                'unit_price': item.get('unit_price'),
                'tax_rate': tax_rate,
                'original_invoice_item': original_item,
            }, amounts))

        if errors:
            raise ValidationError('Invalid credit note items', errors=errors)
        return lines

    def _original_item(self, invoice: Invoice, item_id) -> Optional[InvoiceItem]:
        if not item_id:
            return None
        return InvoiceItem.objects.filter(invoice=invoice, id=item_id).first()
