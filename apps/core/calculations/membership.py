# apps/core/calculations/membership.py
"""
Membership Status Calculations

Derives a membership's status from its payment flag and dates. Status is
never stored; it is recomputed from these functions whenever it is needed.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from enum import Enum
from typing import Any, Iterable, Optional, Union

from dateutil.relativedelta import relativedelta
from django.utils import timezone

DEFAULT_GRACE_PERIOD_DAYS = 30
DEFAULT_EXPIRY_WARNING_DAYS = 30

SECONDS_PER_DAY = 24 * 60 * 60

Moment = Union[date, datetime]


class MembershipStatus(str, Enum):
    """Derived membership states."""
    ACTIVE = 'active'
    GRACE = 'grace'
    EXPIRED = 'expired'
    UNPAID = 'unpaid'
    NONE = 'none'


STATUS_TEXT = {
    MembershipStatus.ACTIVE: 'Active',
    MembershipStatus.GRACE: 'Grace Period',
    MembershipStatus.EXPIRED: 'Expired',
    MembershipStatus.UNPAID: 'Payment Due',
    MembershipStatus.NONE: 'No Membership',
}


@dataclass(frozen=True)
class RenewalDates:
    start_date: date
    expiry_date: date


def as_instant(value: Moment) -> datetime:
    """
    Normalize a date or datetime to an aware UTC datetime.

    Plain dates become midnight UTC of that day, which is how expiry
    dates are compared.
    """
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            return value.replace(tzinfo=dt_timezone.utc)
        return value.astimezone(dt_timezone.utc)
    return datetime.combine(value, time.min, tzinfo=dt_timezone.utc)


def _resolve_grace_days(membership: Any, grace_period_days: Optional[int]) -> int:
    if grace_period_days is not None:
        return int(grace_period_days)
    own = getattr(membership, 'grace_period_days', None)
    if own is not None:
        return int(own)
    return DEFAULT_GRACE_PERIOD_DAYS


def _expiry_and_grace_end(membership: Any, grace_period_days: Optional[int]):
    expiry = as_instant(membership.expiry_date)
    grace_end = expiry + timedelta(days=_resolve_grace_days(membership, grace_period_days))
    return expiry, grace_end


def _ceil_days(delta: timedelta) -> int:
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def calculate_membership_status(
    membership: Any,
    grace_period_days: Optional[int] = None,
    now: Optional[Moment] = None
) -> MembershipStatus:
    """
    Calculate the status of a membership.

    Args:
        membership: Object exposing fee_paid and expiry_date, or None
        grace_period_days: Days after expiry still treated as grace.
            Defaults to the membership's own value, then 30.
        now: Reference instant, defaults to the current time

    Returns:
        MembershipStatus. An unpaid membership is UNPAID whatever its dates.
    """
    if membership is None:
        return MembershipStatus.NONE

    if not membership.fee_paid:
        return MembershipStatus.UNPAID

    current = as_instant(now if now is not None else timezone.now())
    expiry, grace_end = _expiry_and_grace_end(membership, grace_period_days)

    if current <= expiry:
        return MembershipStatus.ACTIVE

    if current <= grace_end:
        return MembershipStatus.GRACE

    return MembershipStatus.EXPIRED


def get_days_until_expiry(
    membership: Any,
    grace_period_days: Optional[int] = None,
    now: Optional[Moment] = None
) -> Optional[int]:
    """Whole days (rounded up) until expiry; None unless the membership is active."""
    current = as_instant(now if now is not None else timezone.now())
    status = calculate_membership_status(membership, grace_period_days, current)
    if status != MembershipStatus.ACTIVE:
        return None

    expiry, _ = _expiry_and_grace_end(membership, grace_period_days)
    return _ceil_days(expiry - current)


def get_grace_period_remaining(
    membership: Any,
    grace_period_days: Optional[int] = None,
    now: Optional[Moment] = None
) -> Optional[int]:
    """Whole days (rounded up) left in the grace period; None outside grace."""
    current = as_instant(now if now is not None else timezone.now())
    status = calculate_membership_status(membership, grace_period_days, current)
    if status != MembershipStatus.GRACE:
        return None

    _, grace_end = _expiry_and_grace_end(membership, grace_period_days)
    return _ceil_days(grace_end - current)


def is_expiring_soon(
    membership: Any,
    grace_period_days: Optional[int] = None,
    now: Optional[Moment] = None,
    warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS
) -> bool:
    days = get_days_until_expiry(membership, grace_period_days, now)
    return days is not None and days <= warning_days


def can_renew_membership(
    membership: Any,
    grace_period_days: Optional[int] = None,
    now: Optional[Moment] = None
) -> bool:
    status = calculate_membership_status(membership, grace_period_days, now)
    return status in (MembershipStatus.ACTIVE, MembershipStatus.GRACE)


def get_status_text(status: Union[MembershipStatus, str]) -> str:
    try:
        return STATUS_TEXT[MembershipStatus(status)]
    except ValueError:
        return 'Unknown'


def calculate_renewal_dates(membership_type: Any, start_date: Optional[date] = None) -> RenewalDates:
    """Start and expiry dates for a new term of the given membership type."""
    start = start_date or timezone.now().date()
    expiry = start + relativedelta(months=int(membership_type.duration_months))
    return RenewalDates(start_date=start, expiry_date=expiry)


def format_membership_benefits(benefits: Optional[Iterable[str]]) -> str:
    benefits = list(benefits or [])
    if not benefits:
        return 'No benefits listed'
    return ' • '.join(benefits)
