# apps/api/views/credit_note_views.py
"""
Credit Note API Views

Students and members read their own credit notes. Administrators raise,
edit, delete and apply them.
"""

import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import CreditNote
from apps.core.services import CreditNoteService
from apps.api.serializers import (
    CreditNoteSerializer,
    CreditNoteListSerializer,
    CreditNoteCreateSerializer,
    CreditNoteUpdateSerializer,
)
from shared.common.permissions import IsAdminOrReadOnly
from .base import ServiceExceptionMixin, RestrictedQuerysetMixin
from .filters import CreditNoteFilter

logger = logging.getLogger(__name__)


class CreditNoteViewSet(ServiceExceptionMixin, RestrictedQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for credit notes.

    Only drafts can be edited or deleted. Deleting is soft; applying
    credits the user's account and locks the credit note.
    """

    queryset = CreditNote.objects.select_related('original_invoice').prefetch_related('items')
    serializer_class = CreditNoteSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = CreditNoteFilter
    search_fields = ['credit_note_number', 'reason', 'original_invoice__invoice_number']
    ordering_fields = ['issue_date', 'total_amount', 'credit_note_number', 'created_at']
    ordering = ['-issue_date', '-created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.credit_note_service = CreditNoteService()

    def get_queryset(self):
        return self.restrict_queryset(super().get_queryset())

    def get_serializer_class(self):
        if self.action == 'list':
            return CreditNoteListSerializer
        elif self.action == 'create':
            return CreditNoteCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return CreditNoteUpdateSerializer
        return CreditNoteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        credit_note = self.credit_note_service.create_credit_note(
            data['original_invoice'],
            user_id=data['user_id'],
            reason=data['reason'],
            items=[dict(item) for item in data['items']],
            notes=data.get('notes'),
            created_by=request.user.id,
        )

        return Response(CreditNoteSerializer(credit_note).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        credit_note = self.credit_note_service.update_draft(instance, **serializer.validated_data)
        return Response(CreditNoteSerializer(credit_note).data)

    def destroy(self, request, *args, **kwargs):
        """Soft delete a draft."""
        instance = self.get_object()
        reason = request.data.get('reason') or 'User initiated deletion'

        credit_note, items_deleted = self.credit_note_service.soft_delete(
            instance,
            deleted_by=request.user.id,
            reason=reason,
        )
        return Response({
            'id': str(credit_note.id),
            'credit_note_number': credit_note.credit_note_number,
            'items_deleted': items_deleted,
        })

    @action(detail=True, methods=['post'])
    def apply(self, request, pk=None):
        """Credit the user's account with this credit note."""
        credit_note = self.get_object()
        credit_note = self.credit_note_service.apply_credit_note(credit_note, applied_by=request.user.id)
        return Response(CreditNoteSerializer(credit_note).data)
