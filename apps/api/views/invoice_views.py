# apps/api/views/invoice_views.py
"""
Invoice API Views

Invoices, their line items and the calculation preview.
"""

import logging

from rest_framework import viewsets, status, filters, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.calculations.invoice import calculate_item_amounts, calculate_invoice_totals
from apps.core.models import Invoice, InvoiceItem, InvoiceStatus
from apps.core.services import InvoiceService
from apps.api.serializers import (
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
from shared.common.permissions import IsInstructorOrReadOnly
from .base import ServiceExceptionMixin, RestrictedQuerysetMixin
from .filters import InvoiceFilter

logger = logging.getLogger(__name__)


class InvoiceViewSet(ServiceExceptionMixin, RestrictedQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for invoice management.

    Students and members see their own invoices read-only. Paid,
    cancelled and refunded invoices cannot be edited.
    """

    queryset = Invoice.objects.prefetch_related('items')
    serializer_class = InvoiceSerializer
    permission_classes = [IsInstructorOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = InvoiceFilter
    search_fields = ['invoice_number', 'reference', 'notes']
    ordering_fields = ['issue_date', 'due_date', 'total_amount', 'invoice_number', 'created_at']
    ordering = ['-issue_date', '-created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.invoice_service = InvoiceService()

    def get_queryset(self):
        return self.restrict_queryset(super().get_queryset())

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'list':
            return InvoiceListSerializer
        elif self.action == 'create':
            return InvoiceCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return InvoiceUpdateSerializer
        return InvoiceSerializer

    def create(self, request, *args, **kwargs):
        """Create an invoice with optional line items."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        invoice = self.invoice_service.create_invoice(
            user_id=data.pop('user_id'),
            items=[dict(item) for item in data.pop('items', [])],
            status=data.pop('status'),
            created_by=request.user.id,
            tax_rate=data.pop('tax_rate', None),
            issue_date=data.pop('issue_date', None),
            due_date=data.pop('due_date', None),
            **data
        )

        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        invoice = self.invoice_service.update_invoice(instance, **serializer.validated_data)
        return Response(InvoiceSerializer(invoice).data)

    def destroy(self, request, *args, **kwargs):
        """Only draft invoices are deleted; anything issued is cancelled instead."""
        instance = self.get_object()
        if instance.status != InvoiceStatus.DRAFT:
            return Response({
                'error': 'state_error',
                'message': 'Only draft invoices can be deleted; cancel issued invoices instead'
            }, status=status.HTTP_400_BAD_REQUEST)

        instance.delete()
        logger.info(f"Draft invoice deleted: {instance.invoice_number}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get', 'post'])
    def items(self, request, pk=None):
        """List or add line items."""
        invoice = self.get_object()

        if request.method == 'GET':
            serializer = InvoiceItemSerializer(invoice.items.all(), many=True)
            return Response(serializer.data)

        serializer = InvoiceItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = self.invoice_service.add_item(invoice, **serializer.validated_data)
        return Response(InvoiceItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='record-payment')
    def record_payment(self, request, pk=None):
        invoice = self.get_object()
        serializer = InvoicePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invoice = self.invoice_service.record_payment(
            invoice,
            serializer.validated_data['amount'],
            payment_reference=serializer.validated_data.get('payment_reference'),
        )
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=['post'], url_path='change-status')
    def change_status(self, request, pk=None):
        invoice = self.get_object()
        serializer = InvoiceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invoice = self.invoice_service.change_status(
            invoice,
            serializer.validated_data['status'],
            user_id=request.user.id,
        )
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=['post'])
    def recalculate(self, request, pk=None):
        """Recompute totals from the stored items."""
        invoice = self.get_object()
        invoice = self.invoice_service.update_invoice_totals(invoice)
        return Response(InvoiceSerializer(invoice).data)


class InvoiceItemViewSet(
    ServiceExceptionMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet
):
    """
    Individual invoice line items.

    Items are created through the invoice's items action. Editing an item
    recomputes that item and the invoice totals.
    """

    queryset = InvoiceItem.objects.select_related('invoice')
    serializer_class = InvoiceItemSerializer
    permission_classes = [IsInstructorOrReadOnly]
    filterset_fields = ['invoice']
    ordering = ['sort_order', 'created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.invoice_service = InvoiceService()

    def get_queryset(self):
        queryset = super().get_queryset()
        user = self.request.user
        if getattr(user, 'is_restricted', True):
            queryset = queryset.filter(invoice__user_id=user.id)
        return queryset

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        item = self.get_object()

        serializer = InvoiceItemInputSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        item = self.invoice_service.update_item(item, **serializer.validated_data)
        return Response(InvoiceItemSerializer(item).data)

    def destroy(self, request, *args, **kwargs):
        item = self.get_object()
        self.invoice_service.remove_item(item)
        return Response(status=status.HTTP_204_NO_CONTENT)


class InvoiceCalculationPreviewView(ServiceExceptionMixin, APIView):
    """Price a set of items without saving anything."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = InvoiceCalculationPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        items = []
        for item in serializer.validated_data['items']:
            amounts = calculate_item_amounts(item['quantity'], item['unit_price'], item['tax_rate'])
            items.append({
                'quantity': str(item['quantity']),
                'unit_price': str(item['unit_price']),
                'tax_rate': str(item['tax_rate']),
                'amount': str(amounts.amount),
                'tax_amount': str(amounts.tax_amount),
                'line_total': str(amounts.line_total),
                'rate_inclusive': str(amounts.rate_inclusive),
            })

        totals = calculate_invoice_totals(items)

        return Response({
            'items': items,
            'subtotal': str(totals.subtotal),
            'tax_total': str(totals.tax_total),
            'total_amount': str(totals.total_amount),
        })
