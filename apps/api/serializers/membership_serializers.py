# apps/api/serializers/membership_serializers.py
"""
Membership Serializers
"""

from decimal import Decimal
from rest_framework import serializers

from apps.core.calculations.membership import (
    calculate_membership_status,
    format_membership_benefits,
    get_status_text,
)
from apps.core.models import Membership, MembershipType


class MembershipTypeSerializer(serializers.ModelSerializer):
    benefits_text = serializers.SerializerMethodField()

    class Meta:
        model = MembershipType
        fields = [
            'id', 'name', 'code', 'description',
            'price', 'duration_months', 'benefits', 'benefits_text',
            'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_benefits_text(self, obj) -> str:
        return format_membership_benefits(obj.benefits)

    def validate_benefits(self, value):
        if not isinstance(value, list) or not all(isinstance(b, str) for b in value):
            raise serializers.ValidationError('Benefits must be a list of strings')
        return value


class MembershipSerializer(serializers.ModelSerializer):
    """Membership with its derived status."""

    membership_type = MembershipTypeSerializer(read_only=True)
    status = serializers.SerializerMethodField()
    status_text = serializers.SerializerMethodField()
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True, default=None)

    class Meta:
        model = Membership
        fields = [
            'id', 'user_id', 'membership_type',
            'start_date', 'expiry_date', 'purchased_date',
            'status', 'status_text',
            'is_active', 'fee_paid', 'amount_paid',
            'invoice', 'invoice_number', 'renewal_of',
            'auto_renew', 'grace_period_days', 'notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_status(self, obj) -> str:
        return calculate_membership_status(obj).value

    def get_status_text(self, obj) -> str:
        return get_status_text(calculate_membership_status(obj))


class MembershipCreateSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    membership_type_id = serializers.PrimaryKeyRelatedField(
        queryset=MembershipType.objects.all(),
        error_messages={'does_not_exist': 'Membership type not found'}
    )
    start_date = serializers.DateField(required=False)
    expiry_date = serializers.DateField(required=False)
    auto_renew = serializers.BooleanField(default=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    create_invoice = serializers.BooleanField(default=True)

    def validate(self, attrs):
        start = attrs.get('start_date')
        expiry = attrs.get('expiry_date')
        if start and expiry and expiry <= start:
            raise serializers.ValidationError({'expiry_date': 'Expiry date must be after start date'})
        return attrs


class MembershipUpdateSerializer(serializers.ModelSerializer):

    class Meta:
        model = Membership
        fields = ['auto_renew', 'notes', 'grace_period_days']


class MembershipRenewSerializer(serializers.Serializer):
    membership_type_id = serializers.PrimaryKeyRelatedField(
        queryset=MembershipType.objects.all(),
        required=False,
        error_messages={'does_not_exist': 'Membership type not found'}
    )
    auto_renew = serializers.BooleanField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class MembershipMarkPaidSerializer(serializers.Serializer):
    amount_paid = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0'),
        required=False
    )


class MembershipStatusSerializer(serializers.Serializer):
    """A user's membership summary."""

    current_membership = MembershipSerializer(allow_null=True)
    status = serializers.CharField()
    status_text = serializers.CharField()
    days_until_expiry = serializers.IntegerField(allow_null=True)
    grace_period_remaining = serializers.IntegerField(allow_null=True)
    is_expiring_soon = serializers.BooleanField()
    can_renew = serializers.BooleanField()
    membership_history = MembershipSerializer(many=True)
