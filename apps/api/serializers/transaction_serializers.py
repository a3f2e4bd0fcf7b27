# apps/api/serializers/transaction_serializers.py
"""
Transaction Serializers
"""

from rest_framework import serializers

from apps.core.models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    transaction_type_display = serializers.CharField(source='get_transaction_type_display', read_only=True)
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    reversal_of = serializers.UUIDField(source='reversal_of_id', read_only=True, allow_null=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'user_id', 'invoice',
            'transaction_type', 'transaction_type_display',
            'category', 'category_display',
            'status', 'status_display',
            'amount', 'description', 'reference_number',
            'reversal_of', 'reversal_reason', 'completed_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields
