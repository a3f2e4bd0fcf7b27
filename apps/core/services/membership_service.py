# apps/core/services/membership_service.py
"""
Membership Service

Membership creation, renewal, status summaries and membership invoices.
"""

import uuid
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Dict, Any, Union

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.calculations.invoice import round2, tax_exclusive_rate
from apps.core.calculations.membership import (
    DEFAULT_GRACE_PERIOD_DAYS,
    MembershipStatus,
    calculate_membership_status,
    calculate_renewal_dates,
    can_renew_membership,
    get_days_until_expiry,
    get_grace_period_remaining,
    get_status_text,
    is_expiring_soon,
)
from apps.core.models import (
    Invoice,
    InvoiceStatus,
    Membership,
    MembershipType,
    SettingCategory,
)
from . import (
    MembershipNotFoundError,
    MembershipStateError,
    ValidationError,
)
from .invoice_service import InvoiceService
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

# Invoice states in which a membership invoice still counts
OPEN_INVOICE_STATUSES = (
    InvoiceStatus.DRAFT,
    InvoiceStatus.PENDING,
    InvoiceStatus.OVERDUE,
    InvoiceStatus.PAID,
)


class MembershipService:
    """
    Service for memberships.

    Handles:
    - Current membership and derived status per user
    - New memberships and renewals
    - Invoicing of membership fees
    """

    def __init__(
        self,
        settings_service: SettingsService = None,
        invoice_service: InvoiceService = None
    ):
        self.settings_service = settings_service or SettingsService()
        self.invoice_service = invoice_service or InvoiceService(settings_service=self.settings_service)
        self.defaults = settings.FLIGHTDESK

    def get_grace_period_days(self) -> int:
        default = self.defaults.get('MEMBERSHIP_GRACE_PERIOD_DAYS', DEFAULT_GRACE_PERIOD_DAYS)
        value = self.settings_service.get_setting_value(
            SettingCategory.MEMBERSHIPS, 'grace_period_days', default
        )
        try:
            days = int(value)
        except (TypeError, ValueError):
            return default
        return days if days >= 0 else default

    def get_membership(self, membership_id: uuid.UUID) -> Membership:
        try:
            return Membership.objects.select_related('membership_type', 'invoice').get(id=membership_id)
        except Membership.DoesNotExist:
            raise MembershipNotFoundError(f"Membership {membership_id} not found")

    def get_current_membership(self, user_id: uuid.UUID) -> Optional[Membership]:
        return (
            Membership.objects.select_related('membership_type')
            .filter(user_id=user_id, is_active=True)
            .order_by('-start_date', '-created_at')
            .first()
        )

    def get_status(
        self,
        user_id: uuid.UUID,
        now: Optional[Union[date, datetime]] = None
    ) -> Dict[str, Any]:
        """
        Summarise a user's membership.

        Returns the current membership, its derived status and the
        day counts that go with it, plus the membership history.
        """
        now = now or timezone.now()
        membership = self.get_current_membership(user_id)
        grace_days = membership.grace_period_days if membership else self.get_grace_period_days()
        warning_days = self.defaults.get('MEMBERSHIP_EXPIRY_WARNING_DAYS', 30)

        status = calculate_membership_status(membership, grace_days, now)
        history = list(
            Membership.objects.select_related('membership_type')
            .filter(user_id=user_id)
            .order_by('-start_date', '-created_at')
        )

        return {
            'current_membership': membership,
            'status': status.value,
            'status_text': get_status_text(status),
            'days_until_expiry': get_days_until_expiry(membership, grace_days, now),
            'grace_period_remaining': get_grace_period_remaining(membership, grace_days, now),
            'is_expiring_soon': is_expiring_soon(membership, grace_days, now, warning_days),
            'can_renew': can_renew_membership(membership, grace_days, now),
            'membership_history': history,
        }

    # ==========================================================================
    # Create / renew
    # ==========================================================================

    @transaction.atomic
    def create_membership(
        self,
        user_id: uuid.UUID,
        membership_type: MembershipType,
        start_date: date = None,
        expiry_date: date = None,
        auto_renew: bool = False,
        notes: str = None,
        created_by: uuid.UUID = None,
        create_invoice: bool = True,
        renewal_of: Membership = None,
    ) -> Membership:
        """
        Create a membership, unpaid until its invoice is paid.

        Expiry defaults to start plus the type's duration.
        """
        if not membership_type.is_active:
            raise ValidationError(
                f"Membership type {membership_type.name} is not active",
                errors=[{'field': 'membership_type_id', 'message': 'Membership type is not active'}]
            )

        dates = calculate_renewal_dates(membership_type, start_date)
        expiry = expiry_date or dates.expiry_date
        if expiry <= dates.start_date:
            raise ValidationError(
                'Expiry date must be after start date',
                errors=[{'field': 'expiry_date', 'message': 'Expiry date must be after start date'}]
            )

        membership = Membership.objects.create(
            user_id=user_id,
            membership_type=membership_type,
            start_date=dates.start_date,
            expiry_date=expiry,
            purchased_date=timezone.localdate(),
            is_active=True,
            fee_paid=False,
            auto_renew=auto_renew,
            grace_period_days=self.get_grace_period_days(),
            notes=notes,
            renewal_of=renewal_of,
            updated_by=created_by,
        )

        logger.info(
            f"Membership created for user {user_id}",
            extra={
                'membership_id': str(membership.id),
                'user_id': str(user_id),
                'membership_type': membership_type.code,
                'renewal_of': str(renewal_of.id) if renewal_of else None,
            }
        )

        if create_invoice and membership_type.price > 0:
            self.create_membership_invoice(membership, created_by=created_by)

        return membership

    @transaction.atomic
    def renew_membership(
        self,
        membership: Membership,
        membership_type: MembershipType = None,
        auto_renew: bool = None,
        notes: str = None,
        user_id: uuid.UUID = None,
        now: Optional[Union[date, datetime]] = None,
    ) -> Membership:
        """
        Start the next term of a membership.

        A membership still active or in grace renews from its expiry date,
        so no days are lost; a lapsed one renews from today. The previous
        membership is deactivated and linked through renewal_of.
        """
        membership = Membership.objects.select_for_update().get(pk=membership.pk)
        if not membership.is_active:
            raise MembershipStateError('Only the current membership can be renewed')

        now = now or timezone.now()
        if can_renew_membership(membership, now=now):
            start_date = membership.expiry_date
        else:
            start_date = now.date() if isinstance(now, datetime) else now

        membership.is_active = False
        membership.updated_by = user_id
        membership.save(update_fields=['is_active', 'updated_by', 'updated_at'])

        return self.create_membership(
            user_id=membership.user_id,
            membership_type=membership_type or membership.membership_type,
            start_date=start_date,
            auto_renew=membership.auto_renew if auto_renew is None else auto_renew,
            notes=notes,
            created_by=user_id,
            renewal_of=membership,
        )

    # ==========================================================================
    # Payment
    # ==========================================================================

    @transaction.atomic
    def create_membership_invoice(
        self,
        membership: Membership,
        created_by: uuid.UUID = None,
        today: date = None
    ) -> Invoice:
        """
        Invoice the membership fee.

        The type's price includes tax, so the line's unit price is the
        price with tax taken back out. Payment is due on the earlier of the
        expiry date and 30 days from today.
        """
        if membership.invoice_id and membership.invoice.status in OPEN_INVOICE_STATUSES:
            raise MembershipStateError(
                f"Membership already has invoice {membership.invoice.invoice_number}"
            )

        membership_type = membership.membership_type
        today = today or timezone.localdate()

        tax_rate = self.invoice_service.get_tax_rate()
        unit_price = tax_exclusive_rate(membership_type.price, tax_rate)

        due_days = self.defaults.get('MEMBERSHIP_INVOICE_DUE_DAYS', 30)
        due_date = min(membership.expiry_date, today + timedelta(days=due_days))
        reference = f"MEMBERSHIP-{membership_type.code.upper()}"

        invoice = self.invoice_service.create_invoice(
            user_id=membership.user_id,
            items=[{
                'description': f"{membership_type.name} Membership Fee",
                'chargeable_reference': reference,
                'quantity': Decimal('1'),
                'unit_price': unit_price,
                'tax_rate': tax_rate,
            }],
            status=InvoiceStatus.PENDING,
            created_by=created_by,
            tax_rate=tax_rate,
            issue_date=today,
            due_date=due_date,
            reference=reference,
            notes=f"Membership fee for {membership_type.name}",
        )

        membership.invoice = invoice
        membership.save(update_fields=['invoice', 'updated_at'])

        logger.info(
            f"Membership invoice {invoice.invoice_number} created",
            extra={
                'membership_id': str(membership.id),
                'invoice_id': str(invoice.id),
                'total_amount': str(invoice.total_amount),
            }
        )

        return invoice

    @transaction.atomic
    def mark_paid(
        self,
        membership: Membership,
        amount_paid: Decimal = None,
        user_id: uuid.UUID = None
    ) -> Membership:
        """
        Mark the membership fee as paid.

        An outstanding membership invoice is settled with a payment for its
        balance; the invoice then flags the membership paid. amount_paid, if
        given, must match that balance.
        """
        membership = Membership.objects.select_for_update().get(pk=membership.pk)
        if membership.fee_paid:
            raise MembershipStateError('Membership fee is already paid')

        invoice = membership.invoice
        if invoice and invoice.status in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE, InvoiceStatus.DRAFT):
            if amount_paid is not None and round2(amount_paid) != invoice.balance_due:
                message = (
                    f"Amount paid must match the balance of invoice "
                    f"{invoice.invoice_number} ({invoice.balance_due})"
                )
                raise ValidationError(message, errors=[{'field': 'amount_paid', 'message': message}])

            if invoice.status == InvoiceStatus.DRAFT:
                invoice = self.invoice_service.change_status(invoice, InvoiceStatus.PENDING, user_id)
            if invoice.balance_due > 0:
                self.invoice_service.record_payment(
                    invoice, invoice.balance_due, payment_reference=f"MEMBERSHIP-{membership.id}"
                )
            membership.refresh_from_db()

        if not membership.fee_paid:
            membership.fee_paid = True
            membership.amount_paid = round2(
                amount_paid if amount_paid is not None else membership.membership_type.price
            )
        membership.updated_by = user_id
        membership.save()

        logger.info(
            f"Membership marked paid: {membership.id}",
            extra={'membership_id': str(membership.id), 'amount_paid': str(membership.amount_paid)}
        )

        return membership

    def status_for(self, membership: Membership, now=None) -> MembershipStatus:
        return calculate_membership_status(membership, membership.grace_period_days, now)
