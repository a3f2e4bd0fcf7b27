from django.contrib import admin
from .models import (
    Booking,
    CreditNote,
    CreditNoteItem,
    FlightAuthorization,
    FlightType,
    Invoice,
    InvoiceItem,
    Membership,
    MembershipType,
    Observation,
    Setting,
    Transaction,
)


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ['amount', 'tax_amount', 'line_total', 'rate_inclusive']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'user_id', 'status', 'issue_date', 'due_date', 'total_amount', 'balance_due']
    list_filter = ['status']
    search_fields = ['invoice_number', 'reference']
    readonly_fields = ['subtotal', 'tax_total', 'total_amount', 'balance_due']
    inlines = [InvoiceItemInline]


class CreditNoteItemInline(admin.TabularInline):
    model = CreditNoteItem
    extra = 0
    readonly_fields = ['amount', 'tax_amount', 'line_total']


@admin.register(CreditNote)
class CreditNoteAdmin(admin.ModelAdmin):
    list_display = ['credit_note_number', 'original_invoice', 'user_id', 'status', 'issue_date', 'total_amount']
    list_filter = ['status']
    search_fields = ['credit_note_number', 'original_invoice__invoice_number']
    readonly_fields = ['subtotal', 'tax_total', 'total_amount', 'credit_transaction']
    inlines = [CreditNoteItemInline]


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'user_id', 'transaction_type', 'category', 'amount', 'reference_number']
    list_filter = ['transaction_type', 'category', 'status']


@admin.register(FlightType)
class FlightTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'instruction_type', 'is_active']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'aircraft_id', 'user_id', 'start_time', 'status', 'authorization_override']
    list_filter = ['status', 'booking_type']


@admin.register(FlightAuthorization)
class FlightAuthorizationAdmin(admin.ModelAdmin):
    list_display = ['id', 'booking', 'student_id', 'status', 'submitted_at', 'approved_at']
    list_filter = ['status', 'purpose_of_flight']


@admin.register(MembershipType)
class MembershipTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'price', 'duration_months', 'is_active']


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ['user_id', 'membership_type', 'start_date', 'expiry_date', 'fee_paid', 'is_active']
    list_filter = ['fee_paid', 'is_active', 'membership_type']


@admin.register(Observation)
class ObservationAdmin(admin.ModelAdmin):
    list_display = ['name', 'aircraft_id', 'priority', 'stage', 'reported_date']
    list_filter = ['stage', 'priority']


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['category', 'setting_key', 'data_type', 'is_public']
    list_filter = ['category']
