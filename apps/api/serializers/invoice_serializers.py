# apps/api/serializers/invoice_serializers.py
"""
Invoice Serializers
"""

from decimal import Decimal
from rest_framework import serializers

from apps.core.models import Booking, Invoice, InvoiceItem, InvoiceStatus


class InvoiceItemSerializer(serializers.ModelSerializer):
    """Invoice line item with its derived amounts."""

    class Meta:
        model = InvoiceItem
        fields = [
            'id', 'invoice', 'description', 'chargeable_reference',
            'quantity', 'unit_price', 'tax_rate',
            'rate_inclusive', 'amount', 'tax_amount', 'line_total',
            'sort_order', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'invoice', 'rate_inclusive', 'amount', 'tax_amount', 'line_total',
            'created_at', 'updated_at',
        ]


class InvoiceItemInputSerializer(serializers.Serializer):
    """
    Line item input.

    Give either unit_price (tax-exclusive) or rate_inclusive; the other is
    derived. tax_rate defaults to the invoice's rate.
    """

    description = serializers.CharField(max_length=500)
    chargeable_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    quantity = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01'),
        default=Decimal('1')
    )
    unit_price = serializers.DecimalField(
        max_digits=16,
        decimal_places=6,
        min_value=Decimal('0'),
        required=False
    )
    rate_inclusive = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        min_value=Decimal('0'),
        required=False
    )
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
    sort_order = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs):
        partial = getattr(self.root, 'partial', False)
        if not partial and 'unit_price' not in attrs and 'rate_inclusive' not in attrs:
            raise serializers.ValidationError({'unit_price': 'Unit price or tax-inclusive rate is required'})
        return attrs


class InvoiceSerializer(serializers.ModelSerializer):
    """Invoice with line items."""

    status_display = serializers.CharField(source='get_status_display', read_only=True)
    is_editable = serializers.BooleanField(read_only=True)
    items = InvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'user_id', 'booking', 'reference',
            'status', 'status_display', 'is_editable',
            'issue_date', 'due_date', 'paid_date',
            'tax_rate', 'subtotal', 'tax_total', 'total_amount',
            'total_paid', 'balance_due',
            'notes', 'items',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class InvoiceListSerializer(InvoiceSerializer):

    class Meta(InvoiceSerializer.Meta):
        fields = [
            'id', 'invoice_number', 'user_id', 'reference',
            'status', 'status_display',
            'issue_date', 'due_date',
            'total_amount', 'balance_due',
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    booking = serializers.PrimaryKeyRelatedField(
        queryset=Booking.objects.all(),
        required=False,
        allow_null=True
    )
    status = serializers.ChoiceField(
        choices=[
            (InvoiceStatus.DRAFT, 'Draft'),
            (InvoiceStatus.PENDING, 'Pending'),
            (InvoiceStatus.PAID, 'Paid'),
        ],
        default=InvoiceStatus.DRAFT
    )
    issue_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False)
    tax_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=4,
        min_value=Decimal('0'),
        max_value=Decimal('1'),
        required=False
    )
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    items = InvoiceItemInputSerializer(many=True, required=False)

    def validate(self, attrs):
        issue_date = attrs.get('issue_date')
        due_date = attrs.get('due_date')
        if issue_date and due_date and due_date < issue_date:
            raise serializers.ValidationError({'due_date': 'Due date cannot be before the issue date'})
        return attrs


class InvoiceUpdateSerializer(serializers.Serializer):
    booking = serializers.PrimaryKeyRelatedField(
        queryset=Booking.objects.all(),
        required=False,
        allow_null=True
    )
    due_date = serializers.DateField(required=False)
    tax_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=4,
        min_value=Decimal('0'),
        max_value=Decimal('1'),
        required=False
    )
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InvoicePaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)


class InvoiceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=InvoiceStatus.choices)


class CalculationItemSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    unit_price = serializers.DecimalField(max_digits=16, decimal_places=6, min_value=Decimal('0'))
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=4, required=False, default=Decimal('0'))


class InvoiceCalculationPreviewSerializer(serializers.Serializer):
    """Items to price without saving anything."""

    items = CalculationItemSerializer(many=True, allow_empty=True)
