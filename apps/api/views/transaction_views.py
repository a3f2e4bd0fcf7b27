# apps/api/views/transaction_views.py
"""
Transaction API Views

Read-only access to the account ledger.
"""

from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import Transaction
from apps.core.services import TransactionService
from apps.api.serializers import TransactionSerializer
from .base import ServiceExceptionMixin, RestrictedQuerysetMixin
from .filters import TransactionFilter


class TransactionViewSet(ServiceExceptionMixin, RestrictedQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """Ledger entries. Students and members see only their own account."""

    queryset = Transaction.objects.select_related('invoice', 'reversal_of')
    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = TransactionFilter
    search_fields = ['description', 'reference_number']
    ordering_fields = ['created_at', 'amount']
    ordering = ['-created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.transaction_service = TransactionService()

    def get_queryset(self):
        return self.restrict_queryset(super().get_queryset())

    @action(detail=False, methods=['get'])
    def balance(self, request):
        """Account balance: completed debits less completed credits."""
        user_id = request.user.id
        if not request.user.is_restricted and request.query_params.get('user_id'):
            user_id = request.query_params['user_id']

        balance = self.transaction_service.get_account_balance(user_id)
        return Response({'user_id': str(user_id), 'balance': str(balance)})
