# apps/core/models/credit_note.py
"""
Credit Note Model

Corrections against issued invoices. An issued invoice is never edited to
lower what the user owes; a credit note is raised against it instead and,
once applied, credits the user's account.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date
from django.db import models

from shared.common.mixins import BaseModel
from ..calculations.invoice import calculate_item_amounts, calculate_invoice_totals, to_decimal
from .invoice import UNIT_PRICE_PLACES


class CreditNoteStatus(models.TextChoices):
    """Credit note status choices."""
    DRAFT = 'draft', 'Draft'
    APPLIED = 'applied', 'Applied'
    CANCELLED = 'cancelled', 'Cancelled'


class ActiveCreditNoteManager(models.Manager):
    """Hides soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class CreditNote(BaseModel):
    """Credit against one issued invoice."""

    credit_note_number = models.CharField(
        max_length=50,
        unique=True,
        db_index=True
    )
    original_invoice = models.ForeignKey(
        'Invoice',
        on_delete=models.PROTECT,
        related_name='credit_notes'
    )
    user_id = models.UUIDField(db_index=True)
    reason = models.TextField()
    notes = models.TextField(blank=True, null=True)

    status = models.CharField(
        max_length=20,
        choices=CreditNoteStatus.choices,
        default=CreditNoteStatus.DRAFT,
        db_index=True
    )
    issue_date = models.DateField(default=date.today)
    applied_date = models.DateField(blank=True, null=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    created_by = models.UUIDField(blank=True, null=True)
    applied_by = models.UUIDField(blank=True, null=True)
    credit_transaction = models.OneToOneField(
        'Transaction',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='credit_note'
    )

    # Soft delete
    deleted_at = models.DateTimeField(blank=True, null=True)
    deleted_by = models.UUIDField(blank=True, null=True)
    deletion_reason = models.TextField(blank=True, null=True)

    objects = ActiveCreditNoteManager()
    all_objects = models.Manager()

    class Meta:
        db_table = 'credit_notes'
        ordering = ['-created_at']
        base_manager_name = 'all_objects'
        indexes = [
            models.Index(fields=['user_id', 'status']),
            models.Index(fields=['original_invoice', 'status']),
        ]

    def __str__(self):
        return f"{self.credit_note_number}: {self.total_amount}"

    @property
    def is_draft(self) -> bool:
        return self.status == CreditNoteStatus.DRAFT

    def calculate_totals(self) -> None:
        totals = calculate_invoice_totals(CreditNoteItem.objects.filter(credit_note=self))
        self.subtotal = totals.subtotal
        self.tax_total = totals.tax_total
        self.total_amount = totals.total_amount


class CreditNoteItem(BaseModel):
    """Credited line, optionally tied to the invoice line it corrects."""

    credit_note = models.ForeignKey(
        CreditNote,
        on_delete=models.CASCADE,
        related_name='items'
    )
    original_invoice_item = models.ForeignKey(
        'InvoiceItem',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='credit_note_items'
    )

    description = models.CharField(max_length=500)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1'))
    unit_price = models.DecimalField(max_digits=12, decimal_places=4)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0'))

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    class Meta:
        db_table = 'credit_note_items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.description}: {self.line_total}"

    def save(self, *args, **kwargs):
        self.quantity = to_decimal(self.quantity, 'quantity').quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        self.unit_price = to_decimal(self.unit_price, 'unit price').quantize(UNIT_PRICE_PLACES, rounding=ROUND_HALF_UP)
        self.tax_rate = to_decimal(self.tax_rate, 'tax rate').quantize(UNIT_PRICE_PLACES, rounding=ROUND_HALF_UP)

        amounts = calculate_item_amounts(self.quantity, self.unit_price, self.tax_rate)
        self.amount = amounts.amount
        self.tax_amount = amounts.tax_amount
        self.line_total = amounts.line_total
        super().save(*args, **kwargs)
