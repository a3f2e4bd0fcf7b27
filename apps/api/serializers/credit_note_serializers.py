# apps/api/serializers/credit_note_serializers.py
"""
Credit Note Serializers
"""

from decimal import Decimal
from rest_framework import serializers

from apps.core.models import CreditNote, CreditNoteItem, Invoice


class CreditNoteItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = CreditNoteItem
        fields = [
            'id', 'original_invoice_item', 'description',
            'quantity', 'unit_price', 'tax_rate',
            'amount', 'tax_amount', 'line_total',
        ]
        read_only_fields = fields


class CreditNoteItemInputSerializer(serializers.Serializer):
    """Credited line. tax_rate defaults to the original invoice's rate."""

    original_invoice_item_id = serializers.UUIDField(required=False, allow_null=True)
    description = serializers.CharField(max_length=500)
    quantity = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01'),
        default=Decimal('1')
    )
    unit_price = serializers.DecimalField(max_digits=16, decimal_places=6, min_value=Decimal('0'))
    tax_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=4,
        min_value=Decimal('0'),
        max_value=Decimal('1'),
        required=False,
        error_messages={
            'min_value': 'Invalid tax rate: must be between 0 and 1 (e.g., 0.15 for 15%)',
            'max_value': 'Invalid tax rate: must be between 0 and 1 (e.g., 0.15 for 15%)',
        }
    )


class CreditNoteSerializer(serializers.ModelSerializer):
    """Credit note with its items."""

    status_display = serializers.CharField(source='get_status_display', read_only=True)
    invoice_number = serializers.CharField(source='original_invoice.invoice_number', read_only=True)
    credit_transaction = serializers.UUIDField(source='credit_transaction_id', read_only=True, allow_null=True)
    items = CreditNoteItemSerializer(many=True, read_only=True)

    class Meta:
        model = CreditNote
        fields = [
            'id', 'credit_note_number', 'original_invoice', 'invoice_number', 'user_id',
            'status', 'status_display', 'reason', 'notes',
            'issue_date', 'applied_date',
            'subtotal', 'tax_total', 'total_amount',
            'credit_transaction', 'items',
            'created_by', 'applied_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CreditNoteListSerializer(CreditNoteSerializer):

    class Meta(CreditNoteSerializer.Meta):
        fields = [
            'id', 'credit_note_number', 'original_invoice', 'invoice_number', 'user_id',
            'status', 'status_display', 'issue_date', 'total_amount',
        ]
        read_only_fields = fields


class CreditNoteCreateSerializer(serializers.Serializer):
    original_invoice = serializers.PrimaryKeyRelatedField(queryset=Invoice.objects.all())
    user_id = serializers.UUIDField()
    reason = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    items = CreditNoteItemInputSerializer(many=True, allow_empty=False)


class CreditNoteUpdateSerializer(serializers.Serializer):
    """Drafts only; everything else on a credit note is fixed at creation."""

    reason = serializers.CharField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
