# apps/core/models/__init__.py
"""
Flightdesk Models
"""

from .booking import Booking, FlightType
from .credit_note import CreditNote, CreditNoteItem, CreditNoteStatus
from .flight_authorization import (
    FlightAuthorization,
    AuthorizationStatus,
    PurposeOfFlight,
    PaymentMethod,
)
from .invoice import Invoice, InvoiceItem, InvoiceStatus
from .membership import Membership, MembershipType, MembershipTypeCode
from .observation import Observation, ObservationStage, ObservationPriority
from .setting import Setting, SettingCategory, SettingDataType
from .transaction import (
    Transaction,
    TransactionType,
    TransactionCategory,
    TransactionStatus,
)

__all__ = [
    'Booking',
    'FlightType',
    'CreditNote',
    'CreditNoteItem',
    'CreditNoteStatus',
    'FlightAuthorization',
    'AuthorizationStatus',
    'PurposeOfFlight',
    'PaymentMethod',
    'Invoice',
    'InvoiceItem',
    'InvoiceStatus',
    'Membership',
    'MembershipType',
    'MembershipTypeCode',
    'Observation',
    'ObservationStage',
    'ObservationPriority',
    'Setting',
    'SettingCategory',
    'SettingDataType',
    'Transaction',
    'TransactionType',
    'TransactionCategory',
    'TransactionStatus',
]
