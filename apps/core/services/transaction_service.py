# apps/core/services/transaction_service.py
"""
Transaction Service

Account ledger entries for invoices, payments and credit notes.
"""

import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from apps.core.models import (
    Invoice,
    Transaction,
    TransactionType,
    TransactionCategory,
    TransactionStatus,
)
from . import NotFoundError

logger = logging.getLogger(__name__)


class TransactionService:
    """
    Service for the account ledger.

    Entries are append-only: cancelling an invoice adds a reversal rather
    than editing or deleting the original debit.
    """

    def find_invoice_debit(self, invoice: Invoice) -> Optional[Transaction]:
        """The invoice's current debit, ignoring debits already reversed."""
        return Transaction.objects.filter(
            invoice=invoice,
            transaction_type=TransactionType.DEBIT,
            category=TransactionCategory.INVOICE_DEBIT,
            reversal__isnull=True,
        ).order_by('-created_at').first()

    @transaction.atomic
    def create_invoice_debit(self, invoice: Invoice) -> Transaction:
        """Debit the user for an invoice. Returns the existing debit if there is one."""
        existing = self.find_invoice_debit(invoice)
        if existing:
            logger.info(
                f"Debit transaction already exists for invoice {invoice.invoice_number}",
                extra={'invoice_id': str(invoice.id), 'transaction_id': str(existing.id)}
            )
            return existing

        debit = Transaction.objects.create(
            user_id=invoice.user_id,
            transaction_type=TransactionType.DEBIT,
            category=TransactionCategory.INVOICE_DEBIT,
            status=TransactionStatus.COMPLETED,
            amount=invoice.total_amount,
            description=f"Invoice: {invoice.invoice_number}",
            reference_number=invoice.invoice_number,
            invoice=invoice,
            completed_at=timezone.now(),
        )

        logger.info(
            f"Created debit transaction for invoice {invoice.invoice_number}",
            extra={'invoice_id': str(invoice.id), 'transaction_id': str(debit.id), 'amount': str(debit.amount)}
        )

        return debit

    @transaction.atomic
    def create_payment_credit(
        self,
        invoice: Invoice,
        amount: Decimal,
        payment_reference: str = None
    ) -> Transaction:
        credit = Transaction.objects.create(
            user_id=invoice.user_id,
            transaction_type=TransactionType.CREDIT,
            category=TransactionCategory.PAYMENT_CREDIT,
            status=TransactionStatus.COMPLETED,
            amount=amount,
            description=f"Payment for invoice: {invoice.invoice_number}",
            reference_number=payment_reference,
            invoice=invoice,
            completed_at=timezone.now(),
        )

        logger.info(
            f"Created credit transaction for invoice {invoice.invoice_number}",
            extra={'invoice_id': str(invoice.id), 'transaction_id': str(credit.id), 'amount': str(amount)}
        )

        return credit

    @transaction.atomic
    def create_credit_note_credit(self, credit_note) -> Transaction:
        invoice = credit_note.original_invoice
        credit = Transaction.objects.create(
            user_id=credit_note.user_id,
            transaction_type=TransactionType.CREDIT,
            category=TransactionCategory.CREDIT_NOTE,
            status=TransactionStatus.COMPLETED,
            amount=credit_note.total_amount,
            description=f"Credit note {credit_note.credit_note_number} for invoice: {invoice.invoice_number}",
            reference_number=credit_note.credit_note_number,
            invoice=invoice,
            completed_at=timezone.now(),
        )

        logger.info(
            f"Created credit transaction for credit note {credit_note.credit_note_number}",
            extra={
                'credit_note_id': str(credit_note.id),
                'transaction_id': str(credit.id),
                'amount': str(credit.amount),
            }
        )

        return credit

    @transaction.atomic
    def reverse_transaction(self, original: Transaction, reason: str) -> Transaction:
        """
        Reverse a transaction with an entry of the opposite type.

        Reversing the same transaction twice returns the first reversal.
        """
        original = Transaction.objects.select_for_update().get(pk=original.pk)

        existing = Transaction.objects.filter(reversal_of=original).first()
        if existing:
            logger.info(f"Transaction {original.id} already reversed")
            return existing

        reversal_type = (
            TransactionType.CREDIT if original.transaction_type == TransactionType.DEBIT
            else TransactionType.DEBIT
        )
        reference = original.reference_number or str(original.id)[:8]

        reversal = Transaction.objects.create(
            user_id=original.user_id,
            transaction_type=reversal_type,
            category=TransactionCategory.REVERSAL,
            status=TransactionStatus.COMPLETED,
            amount=original.amount,
            description=f"Reversal: {original.description} ({reason})",
            reference_number=f"REV-{reference}",
            invoice=original.invoice,
            reversal_of=original,
            reversal_reason=reason,
            completed_at=timezone.now(),
        )

        logger.info(
            f"Created reversal transaction for {original.id}",
            extra={'transaction_id': str(original.id), 'reversal_id': str(reversal.id), 'reason': reason}
        )

        return reversal

    def get_transaction(self, transaction_id: uuid.UUID) -> Transaction:
        try:
            return Transaction.objects.get(id=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFoundError(f"Transaction {transaction_id} not found")

    def get_invoice_transactions(self, invoice: Invoice) -> List[Transaction]:
        return list(Transaction.objects.filter(invoice=invoice).order_by('-created_at'))

    def get_user_transactions(self, user_id: uuid.UUID, limit: int = 50) -> List[Transaction]:
        return list(
            Transaction.objects.filter(user_id=user_id).order_by('-created_at')[:limit]
        )

    def get_account_balance(self, user_id: uuid.UUID) -> Decimal:
        """Debits minus credits over completed entries. Positive means the user owes money."""
        totals = Transaction.objects.filter(
            user_id=user_id,
            status=TransactionStatus.COMPLETED,
        ).aggregate(
            debits=Sum('amount', filter=Q(transaction_type=TransactionType.DEBIT)),
            credits=Sum('amount', filter=Q(transaction_type=TransactionType.CREDIT)),
        )
        debits = totals['debits'] or Decimal('0.00')
        credits = totals['credits'] or Decimal('0.00')
        return debits - credits
