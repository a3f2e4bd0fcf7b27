# apps/api/serializers/__init__.py
"""
Flightdesk API Serializers
"""

from .invoice_serializers import (
    InvoiceSerializer,
    InvoiceListSerializer,
    InvoiceCreateSerializer,
    InvoiceUpdateSerializer,
    InvoiceItemSerializer,
    InvoiceItemInputSerializer,
    InvoicePaymentSerializer,
    InvoiceStatusSerializer,
    InvoiceCalculationPreviewSerializer,
)
from .authorization_serializers import (
    FlightAuthorizationSerializer,
    FlightAuthorizationListSerializer,
    FlightAuthorizationCreateSerializer,
    FlightAuthorizationApproveSerializer,
    FlightAuthorizationRejectSerializer,
)
from .booking_serializers import (
    BookingSerializer,
    BookingCheckOutSerializer,
    BookingOverrideSerializer,
    AuthorizationStatusSerializer,
    FlightTypeSerializer,
)
from .membership_serializers import (
    MembershipSerializer,
    MembershipCreateSerializer,
    MembershipUpdateSerializer,
    MembershipRenewSerializer,
    MembershipMarkPaidSerializer,
    MembershipStatusSerializer,
    MembershipTypeSerializer,
)
from .observation_serializers import (
    ObservationSerializer,
    ObservationCloseSerializer,
)
from .setting_serializers import (
    SettingSerializer,
    SettingWriteSerializer,
)
from .credit_note_serializers import (
    CreditNoteSerializer,
    CreditNoteListSerializer,
    CreditNoteCreateSerializer,
    CreditNoteUpdateSerializer,
    CreditNoteItemSerializer,
)
from .transaction_serializers import TransactionSerializer
from .report_serializers import ReportExportQuerySerializer

__all__ = [
    'InvoiceSerializer',
    'InvoiceListSerializer',
    'InvoiceCreateSerializer',
    'InvoiceUpdateSerializer',
    'InvoiceItemSerializer',
    'InvoiceItemInputSerializer',
    'InvoicePaymentSerializer',
    'InvoiceStatusSerializer',
    'InvoiceCalculationPreviewSerializer',
    'CreditNoteSerializer',
    'CreditNoteListSerializer',
    'CreditNoteCreateSerializer',
    'CreditNoteUpdateSerializer',
    'CreditNoteItemSerializer',
    'FlightAuthorizationSerializer',
    'FlightAuthorizationListSerializer',
    'FlightAuthorizationCreateSerializer',
    'FlightAuthorizationApproveSerializer',
    'FlightAuthorizationRejectSerializer',
    'BookingSerializer',
    'BookingCheckOutSerializer',
    'BookingOverrideSerializer',
    'AuthorizationStatusSerializer',
    'FlightTypeSerializer',
    'MembershipSerializer',
    'MembershipCreateSerializer',
    'MembershipUpdateSerializer',
    'MembershipRenewSerializer',
    'MembershipMarkPaidSerializer',
    'MembershipStatusSerializer',
    'MembershipTypeSerializer',
    'ObservationSerializer',
    'ObservationCloseSerializer',
    'SettingSerializer',
    'SettingWriteSerializer',
    'TransactionSerializer',
    'ReportExportQuerySerializer',
]
