# apps/core/calculations/invoice.py
"""
Invoice Calculations

Pure arithmetic for invoice line items and invoice totals.

Every per-item value is rounded to cents on its own, and invoice totals are
sums of those rounded values. Re-rounding an unrounded sum gives different
cents on some invoices, so the order here must not change.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional, Union, Any

Number = Union[Decimal, int, float, str]

CENT = Decimal('0.01')
ZERO = Decimal('0.00')
ONE = Decimal('1')


class InvoiceCalculationError(ValueError):
    """Raised when invoice amounts cannot be calculated from the inputs."""
    pass


@dataclass(frozen=True)
class ItemAmounts:
    """Derived values for a single invoice line."""
    amount: Decimal
    tax_amount: Decimal
    line_total: Decimal
    rate_inclusive: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice-level totals."""
    subtotal: Decimal
    tax_total: Decimal
    total_amount: Decimal


def to_decimal(value: Number, field_name: str = 'value') -> Decimal:
    """Convert a number to Decimal without going through binary float."""
    if isinstance(value, bool) or value is None:
        raise InvoiceCalculationError(f"Invalid {field_name}: must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvoiceCalculationError(f"Invalid {field_name}: must be a number")
    if not result.is_finite():
        raise InvoiceCalculationError(f"Invalid {field_name}: must be a finite number")
    return result


def round2(value: Number) -> Decimal:
    """Round to two decimal places, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_tax_rate(tax_rate: Number) -> Decimal:
    rate = to_decimal(tax_rate, 'tax rate')
    if rate < 0 or rate > 1:
        raise InvoiceCalculationError(
            "Invalid tax rate: must be between 0 and 1 (e.g., 0.15 for 15%)"
        )
    return rate


def tax_inclusive_rate(unit_price: Number, tax_rate: Number) -> Decimal:
    """Unit price including tax; untaxed prices pass through unchanged."""
    price = to_decimal(unit_price, 'unit price')
    rate = to_decimal(tax_rate, 'tax rate')
    if rate == 0:
        return price
    return round2(price * (ONE + rate))


def tax_exclusive_rate(inclusive_rate: Number, tax_rate: Number) -> Decimal:
    """
    Convert a tax-inclusive rate back to the tax-exclusive unit price.

    The result is not rounded, so that converting it forward again lands
    within a cent of the original inclusive rate.
    """
    inclusive = to_decimal(inclusive_rate, 'inclusive rate')
    rate = to_decimal(tax_rate, 'tax rate')
    divisor = ONE + rate
    if divisor <= 0:
        raise InvoiceCalculationError("Invalid tax rate: 1 + tax rate must be positive")
    return inclusive / divisor


def calculate_item_amounts(
    quantity: Number,
    unit_price: Number,
    tax_rate: Number = 0
) -> ItemAmounts:
    """
    Calculate the derived amounts for one invoice line.

    Args:
        quantity: Units billed (hours, landings, items)
        unit_price: Tax-exclusive price per unit
        tax_rate: Tax as a fraction, e.g. 0.15

    Returns:
        ItemAmounts with amount, tax_amount, line_total and rate_inclusive

    Raises:
        InvoiceCalculationError: On negative or non-numeric input or a tax
            rate outside [0, 1]
    """
    qty = to_decimal(quantity, 'quantity')
    price = to_decimal(unit_price, 'unit price')
    rate = validate_tax_rate(tax_rate)

    if qty < 0:
        raise InvoiceCalculationError("Invalid quantity: must be zero or greater")
    if price < 0:
        raise InvoiceCalculationError("Invalid unit price: must be zero or greater")

    amount = round2(qty * price)
    tax_amount = round2(amount * rate)
    line_total = round2(amount + tax_amount)

    return ItemAmounts(
        amount=amount,
        tax_amount=tax_amount,
        line_total=line_total,
        rate_inclusive=tax_inclusive_rate(price, rate),
    )


def _item_value(item: Any, field_name: str) -> Optional[Any]:
    if isinstance(item, dict):
        return item.get(field_name)
    return getattr(item, field_name, None)


def calculate_invoice_totals(items: Iterable[Any]) -> InvoiceTotals:
    """
    Sum already-rounded item amounts into invoice totals.

    Items may be ItemAmounts, model instances or dicts exposing ``amount``
    and ``tax_amount``. A missing tax amount counts as zero.
    """
    subtotal = ZERO
    tax_total = ZERO

    for item in items:
        amount = _item_value(item, 'amount')
        tax_amount = _item_value(item, 'tax_amount')
        subtotal += to_decimal(amount if amount is not None else 0, 'amount')
        tax_total += to_decimal(tax_amount if tax_amount is not None else 0, 'tax amount')

    return InvoiceTotals(
        subtotal=round2(subtotal),
        tax_total=round2(tax_total),
        total_amount=round2(subtotal + tax_total),
    )


def calculate_invoice_status(
    total_amount: Number,
    total_paid: Number,
    due_date: Optional[date],
    paid_date: Optional[date],
    today: Optional[date] = None
) -> str:
    """Derive an invoice status from its payment state and due date."""
    today = today or date.today()
    total = to_decimal(total_amount, 'total amount')
    paid = to_decimal(total_paid or 0, 'total paid')
    past_due = due_date is not None and today > due_date

    if paid_date or paid >= total:
        return 'paid'

    if past_due:
        return 'overdue'

    if paid > 0 or total > 0:
        return 'pending'

    return 'draft'
