# apps/api/views/__init__.py
"""
Flightdesk API Views
"""

from .invoice_views import (
    InvoiceViewSet,
    InvoiceItemViewSet,
    InvoiceCalculationPreviewView,
)
from .credit_note_views import CreditNoteViewSet
from .authorization_views import FlightAuthorizationViewSet
from .booking_views import BookingViewSet, FlightTypeViewSet
from .membership_views import MembershipViewSet, MembershipTypeViewSet
from .observation_views import ObservationViewSet
from .setting_views import SettingViewSet
from .transaction_views import TransactionViewSet
from .report_views import ReportExportView

__all__ = [
    'InvoiceViewSet',
    'InvoiceItemViewSet',
    'InvoiceCalculationPreviewView',
    'CreditNoteViewSet',
    'FlightAuthorizationViewSet',
    'BookingViewSet',
    'FlightTypeViewSet',
    'MembershipViewSet',
    'MembershipTypeViewSet',
    'ObservationViewSet',
    'SettingViewSet',
    'TransactionViewSet',
    'ReportExportView',
]
