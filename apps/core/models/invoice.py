# apps/core/models/invoice.py
"""
Invoice Model

Invoices and their line items.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date
from django.db import models

from shared.common.mixins import BaseModel
from ..calculations.invoice import (
    calculate_item_amounts,
    calculate_invoice_totals,
    to_decimal,
)

UNIT_PRICE_PLACES = Decimal('0.0001')


class InvoiceStatus(models.TextChoices):
    """Invoice status choices."""
    DRAFT = 'draft', 'Draft'
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'
    OVERDUE = 'overdue', 'Overdue'
    CANCELLED = 'cancelled', 'Cancelled'
    REFUNDED = 'refunded', 'Refunded'


EDITABLE_INVOICE_STATUSES = (InvoiceStatus.DRAFT, InvoiceStatus.PENDING)

# Allowed manual status changes. Paid invoices only move to refunded.
INVOICE_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.PENDING, InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PENDING: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.PENDING, InvoiceStatus.CANCELLED},
    InvoiceStatus.CANCELLED: {InvoiceStatus.PENDING, InvoiceStatus.PAID},
    InvoiceStatus.PAID: {InvoiceStatus.REFUNDED},
    InvoiceStatus.REFUNDED: set(),
}


class Invoice(BaseModel):
    """
    Invoice issued to a member or student.

    Totals are always derived from the line items; see calculate_totals.
    """

    invoice_number = models.CharField(
        max_length=50,
        unique=True,
        db_index=True
    )
    user_id = models.UUIDField(db_index=True)
    booking = models.ForeignKey(
        'Booking',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='invoices'
    )
    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text='External reference, e.g. MEMBERSHIP-FLYING_MEMBER'
    )

    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.DRAFT,
        db_index=True
    )

    # Dates
    issue_date = models.DateField(default=date.today)
    due_date = models.DateField(blank=True, null=True)
    paid_date = models.DateField(blank=True, null=True)

    # Amounts
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.1500')
    )
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    balance_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    notes = models.TextField(blank=True, null=True)

    created_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'invoices'
        ordering = ['-issue_date', '-created_at']
        indexes = [
            models.Index(fields=['user_id', 'status']),
            models.Index(fields=['due_date']),
        ]

    def __str__(self):
        return f"{self.invoice_number}: {self.total_amount}"

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_INVOICE_STATUSES

    @property
    def is_overdue(self) -> bool:
        return (
            self.status == InvoiceStatus.PENDING and
            self.due_date is not None and
            self.due_date < date.today()
        )

    def calculate_totals(self) -> None:
        """Recalculate subtotal, tax, total and balance from saved items."""
        # Query directly; a prefetched items cache may predate the latest change
        items = list(InvoiceItem.objects.filter(invoice=self)) if self.pk else []

        if not items:
            self.subtotal = Decimal('0.00')
            self.tax_total = Decimal('0.00')
            self.total_amount = Decimal('0.00')
            self.balance_due = Decimal('0.00')
            return

        totals = calculate_invoice_totals(items)
        self.subtotal = totals.subtotal
        self.tax_total = totals.tax_total
        self.total_amount = totals.total_amount
        self.balance_due = self.total_amount - self.total_paid


class InvoiceItem(BaseModel):
    """
    Invoice line item.

    unit_price is tax-exclusive. amount, tax_amount, line_total and
    rate_inclusive are derived on every save.
    """

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name='items'
    )

    description = models.CharField(max_length=500)
    chargeable_reference = models.CharField(max_length=100, blank=True, null=True)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1'))
    unit_price = models.DecimalField(max_digits=12, decimal_places=4)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0'))

    # Derived
    rate_inclusive = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = 'invoice_items'
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        return f"{self.description}: {self.line_total}"

    def apply_amounts(self) -> None:
        """Populate the derived fields from quantity, unit_price and tax_rate."""
        # Derive from the values as they will be stored
        self.quantity = to_decimal(self.quantity, 'quantity').quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        self.unit_price = to_decimal(self.unit_price, 'unit price').quantize(UNIT_PRICE_PLACES, rounding=ROUND_HALF_UP)
        self.tax_rate = to_decimal(self.tax_rate, 'tax rate').quantize(UNIT_PRICE_PLACES, rounding=ROUND_HALF_UP)

        amounts = calculate_item_amounts(self.quantity, self.unit_price, self.tax_rate)
        self.amount = amounts.amount
        self.tax_amount = amounts.tax_amount
        self.line_total = amounts.line_total
        self.rate_inclusive = amounts.rate_inclusive

    def save(self, *args, **kwargs):
        self.apply_amounts()
        super().save(*args, **kwargs)
