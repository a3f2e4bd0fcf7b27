# apps/core/models/membership.py
"""
Membership Models

Membership types offered by the club and the memberships members hold.
"""

from decimal import Decimal
from django.db import models

from shared.common.mixins import BaseModel
from ..calculations.membership import (
    DEFAULT_GRACE_PERIOD_DAYS,
    calculate_membership_status,
)


class MembershipTypeCode(models.TextChoices):
    FLYING_MEMBER = 'flying_member', 'Flying Member'
    NON_FLYING_MEMBER = 'non_flying_member', 'Non-Flying Member'
    STAFF_MEMBERSHIP = 'staff_membership', 'Staff Membership'
    JUNIOR_MEMBER = 'junior_member', 'Junior Member'
    LIFE_MEMBER = 'life_member', 'Life Member'


class MembershipType(BaseModel):
    """
    A membership product.

    price is the tax-inclusive amount charged for one term of
    duration_months.
    """

    name = models.CharField(max_length=100)
    code = models.CharField(
        max_length=50,
        choices=MembershipTypeCode.choices,
        unique=True
    )
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    duration_months = models.PositiveIntegerField(default=12)
    benefits = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'membership_types'
        ordering = ['name']

    def __str__(self):
        return self.name


class Membership(BaseModel):
    """
    A member's membership for one term.

    Status is derived from fee_paid and the dates, see
    apps.core.calculations.membership.
    """

    user_id = models.UUIDField(db_index=True)
    membership_type = models.ForeignKey(
        MembershipType,
        on_delete=models.PROTECT,
        related_name='memberships'
    )

    start_date = models.DateField()
    expiry_date = models.DateField()
    purchased_date = models.DateField(blank=True, null=True)

    is_active = models.BooleanField(default=True)
    fee_paid = models.BooleanField(default=False)
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    invoice = models.ForeignKey(
        'Invoice',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='memberships'
    )
    renewal_of = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='renewals'
    )

    auto_renew = models.BooleanField(default=False)
    grace_period_days = models.PositiveIntegerField(default=DEFAULT_GRACE_PERIOD_DAYS)
    notes = models.TextField(blank=True, null=True)
    updated_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'memberships'
        ordering = ['-start_date', '-created_at']
        indexes = [
            models.Index(fields=['user_id', 'is_active']),
            models.Index(fields=['expiry_date']),
        ]

    def __str__(self):
        return f"{self.membership_type} ({self.start_date} - {self.expiry_date})"

    @property
    def status(self) -> str:
        return calculate_membership_status(self).value
