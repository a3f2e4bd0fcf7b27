# apps/api/urls.py
"""
Flightdesk API URL Configuration
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    # Invoicing
    InvoiceViewSet,
    InvoiceItemViewSet,
    InvoiceCalculationPreviewView,
    CreditNoteViewSet,
    TransactionViewSet,
    # Flight operations
    FlightAuthorizationViewSet,
    BookingViewSet,
    FlightTypeViewSet,
    ObservationViewSet,
    # Membership
    MembershipViewSet,
    MembershipTypeViewSet,
    # Administration
    SettingViewSet,
    ReportExportView,
)

app_name = 'api'

router = DefaultRouter()
router.register(r'invoices', InvoiceViewSet, basename='invoice')
router.register(r'invoice-items', InvoiceItemViewSet, basename='invoice-item')
router.register(r'credit-notes', CreditNoteViewSet, basename='credit-note')
router.register(r'transactions', TransactionViewSet, basename='transaction')
router.register(r'flight-authorizations', FlightAuthorizationViewSet, basename='flight-authorization')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'flight-types', FlightTypeViewSet, basename='flight-type')
router.register(r'observations', ObservationViewSet, basename='observation')
router.register(r'memberships', MembershipViewSet, basename='membership')
router.register(r'membership-types', MembershipTypeViewSet, basename='membership-type')
router.register(r'settings', SettingViewSet, basename='setting')

urlpatterns = [
    path('', include(router.urls)),

    path('reports/export/', ReportExportView.as_view(), name='report-export'),
    path('invoice-calculations/preview/', InvoiceCalculationPreviewView.as_view(), name='invoice-calculation-preview'),
]
