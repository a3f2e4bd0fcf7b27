# apps/core/models/transaction.py
"""
Transaction Model

Account ledger entries raised by invoices, payments and credit notes.
"""

from decimal import Decimal
from django.db import models

from shared.common.mixins import BaseModel


class TransactionType(models.TextChoices):
    """Transaction type choices."""
    DEBIT = 'debit', 'Debit'
    CREDIT = 'credit', 'Credit'
    REFUND = 'refund', 'Refund'
    ADJUSTMENT = 'adjustment', 'Adjustment'


class TransactionCategory(models.TextChoices):
    """What raised the transaction."""
    INVOICE_DEBIT = 'invoice_debit', 'Invoice Debit'
    PAYMENT_CREDIT = 'payment_credit', 'Payment Credit'
    REVERSAL = 'reversal', 'Reversal'
    CREDIT_NOTE = 'credit_note', 'Credit Note'


class TransactionStatus(models.TextChoices):
    """Transaction status choices."""
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class Transaction(BaseModel):
    """
    A single debit or credit against a user's account.

    Reversals are new rows of the opposite type pointing at the original
    through reversal_of; original rows are never edited.
    """

    user_id = models.UUIDField(db_index=True)
    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices
    )
    category = models.CharField(
        max_length=20,
        choices=TransactionCategory.choices
    )
    status = models.CharField(
        max_length=20,
        choices=TransactionStatus.choices,
        default=TransactionStatus.COMPLETED
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    description = models.CharField(max_length=500)
    reference_number = models.CharField(max_length=100, blank=True, null=True)

    invoice = models.ForeignKey(
        'Invoice',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='transactions'
    )
    reversal_of = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='reversal'
    )
    reversal_reason = models.TextField(blank=True, null=True)

    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'transactions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_id', '-created_at']),
            models.Index(fields=['invoice', 'category']),
        ]

    def __str__(self):
        return f"{self.transaction_type} {self.amount}: {self.description}"

    @property
    def is_debit(self) -> bool:
        return self.transaction_type == TransactionType.DEBIT

    @property
    def is_reversed(self) -> bool:
        return Transaction.objects.filter(reversal_of=self).exists()
