# tests/unit/test_credit_notes.py
"""
Unit Tests for Credit Note Service
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from apps.core.models import (
    CreditNote,
    CreditNoteStatus,
    InvoiceStatus,
    TransactionCategory,
    TransactionType,
)
from apps.core.services import (
    CreditNoteService,
    CreditNoteNotFoundError,
    CreditNoteStateError,
    InvoiceService,
    TransactionService,
    ValidationError,
)


REFUND_ITEM = {'description': 'Unused landing fee', 'quantity': Decimal('1'), 'unit_price': Decimal('20.00')}


@pytest.mark.django_db
class TestCreditNoteCreation:
    """Tests for raising credit notes against issued invoices."""

    def setup_method(self):
        self.service = CreditNoteService()

    def test_number_format(self):
        assert self.service.generate_credit_note_number(date(2024, 3, 15)) == 'CN-2024-03-0001'

    def test_create_computes_amounts(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        credit_note = self.service.create_credit_note(invoice, user_id, 'Landing fee refunded', [REFUND_ITEM])

        assert credit_note.status == CreditNoteStatus.DRAFT
        assert credit_note.credit_note_number.startswith('CN-')
        assert credit_note.subtotal == Decimal('20.00')
        assert credit_note.tax_total == Decimal('3.00')
        assert credit_note.total_amount == Decimal('23.00')

        item = credit_note.items.get()
        assert item.tax_rate == Decimal('0.1500')
        assert item.line_total == Decimal('23.00')

    def test_numbers_are_sequential(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        first = self.service.create_credit_note(invoice, user_id, 'First', [REFUND_ITEM])
        second = self.service.create_credit_note(invoice, user_id, 'Second', [REFUND_ITEM])

        assert int(second.credit_note_number[-4:]) == int(first.credit_note_number[-4:]) + 1

    def test_item_linked_to_invoice_line(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        line = invoice.items.get()

        credit_note = self.service.create_credit_note(invoice, user_id, 'Short lesson', [{
            'original_invoice_item_id': line.id,
            'description': 'Dual instruction',
            'quantity': Decimal('0.5'),
            'unit_price': Decimal('100.00'),
        }])

        item = credit_note.items.get()
        assert item.original_invoice_item == line
        assert item.amount == Decimal('50.00')

    def test_rejects_line_from_other_invoice(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        other_line = create_invoice(status=InvoiceStatus.PENDING).items.get()

        with pytest.raises(ValidationError) as exc_info:
            self.service.create_credit_note(invoice, user_id, 'Wrong line', [
                dict(REFUND_ITEM, original_invoice_item_id=other_line.id),
            ])

        assert exc_info.value.errors[0]['field'] == 'items[0].original_invoice_item_id'

    def test_rejects_draft_invoice(self, create_invoice, user_id):
        invoice = create_invoice()

        with pytest.raises(CreditNoteStateError, match='Edit the invoice directly'):
            self.service.create_credit_note(invoice, user_id, 'Too early', [REFUND_ITEM])

    def test_rejects_cancelled_invoice(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        invoice = InvoiceService().change_status(invoice, InvoiceStatus.CANCELLED)

        with pytest.raises(CreditNoteStateError):
            self.service.create_credit_note(invoice, user_id, 'Already cancelled', [REFUND_ITEM])

    def test_rejects_other_user(self, create_invoice):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        with pytest.raises(ValidationError, match='User ID does not match invoice user'):
            self.service.create_credit_note(invoice, uuid.uuid4(), 'Wrong user', [REFUND_ITEM])

    def test_requires_reason_and_items(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        with pytest.raises(ValidationError, match='Reason is required'):
            self.service.create_credit_note(invoice, user_id, '  ', [REFUND_ITEM])

        with pytest.raises(ValidationError, match='at least one item'):
            self.service.create_credit_note(invoice, user_id, 'No items', [])

    @pytest.mark.parametrize('item,field', [
        ({'description': '', 'quantity': 1, 'unit_price': 10}, 'items[0].description'),
        ({'description': 'Fee', 'quantity': 0, 'unit_price': 10}, 'items[0]'),
        ({'description': 'Fee', 'quantity': 1, 'unit_price': 10, 'tax_rate': 15}, 'items[0]'),
    ])
    def test_invalid_items(self, create_invoice, user_id, item, field):
        invoice = create_invoice(status=InvoiceStatus.PENDING)

        with pytest.raises(ValidationError) as exc_info:
            self.service.create_credit_note(invoice, user_id, 'Bad item', [item])

        assert exc_info.value.errors[0]['field'] == field
        assert not CreditNote.all_objects.exists()

    def test_cannot_credit_more_than_invoice_total(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        self.service.create_credit_note(invoice, user_id, 'Most of it', [
            {'description': 'Dual instruction', 'quantity': Decimal('2'), 'unit_price': Decimal('90.00')},
        ])

        with pytest.raises(ValidationError, match='cannot exceed'):
            self.service.create_credit_note(invoice, user_id, 'The rest and more', [
                {'description': 'Dual instruction', 'quantity': Decimal('1'), 'unit_price': Decimal('30.00')},
            ])

    def test_deleted_credit_notes_free_the_total(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        full = [{'description': 'Dual instruction', 'quantity': Decimal('2'), 'unit_price': Decimal('100.00')}]

        first = self.service.create_credit_note(invoice, user_id, 'Full refund', full)
        self.service.soft_delete(first)

        second = self.service.create_credit_note(invoice, user_id, 'Full refund again', full)
        assert second.total_amount == invoice.total_amount


@pytest.mark.django_db
class TestCreditNoteLifecycle:
    """Tests for editing, deleting and applying credit notes."""

    def setup_method(self):
        self.service = CreditNoteService()
        self.transactions = TransactionService()

    @pytest.fixture
    def credit_note(self, create_invoice, user_id):
        invoice = create_invoice(status=InvoiceStatus.PENDING)
        return self.service.create_credit_note(invoice, user_id, 'Landing fee refunded', [REFUND_ITEM])

    def test_apply_credits_account(self, credit_note, user_id):
        applied_by = uuid.uuid4()
        assert self.transactions.get_account_balance(user_id) == Decimal('230.00')

        credit_note = self.service.apply_credit_note(credit_note, applied_by=applied_by)

        assert credit_note.status == CreditNoteStatus.APPLIED
        assert credit_note.applied_by == applied_by
        assert credit_note.applied_date is not None

        credit = credit_note.credit_transaction
        assert credit.transaction_type == TransactionType.CREDIT
        assert credit.category == TransactionCategory.CREDIT_NOTE
        assert credit.amount == Decimal('23.00')
        assert credit.reference_number == credit_note.credit_note_number
        assert credit.invoice == credit_note.original_invoice
        assert self.transactions.get_account_balance(user_id) == Decimal('207.00')

    def test_apply_leaves_invoice_untouched(self, credit_note):
        invoice = credit_note.original_invoice

        self.service.apply_credit_note(credit_note)

        invoice.refresh_from_db()
        assert invoice.total_amount == Decimal('230.00')
        assert invoice.status == InvoiceStatus.PENDING

    def test_apply_twice_is_rejected(self, credit_note):
        self.service.apply_credit_note(credit_note)

        with pytest.raises(CreditNoteStateError, match='Only draft'):
            self.service.apply_credit_note(credit_note)

    def test_update_draft(self, credit_note):
        credit_note = self.service.update_draft(credit_note, reason='Fee waived', notes='Approved by CFI')

        assert credit_note.reason == 'Fee waived'
        assert credit_note.notes == 'Approved by CFI'

    def test_update_requires_a_field(self, credit_note):
        with pytest.raises(ValidationError):
            self.service.update_draft(credit_note)

    def test_applied_credit_note_is_locked(self, credit_note):
        self.service.apply_credit_note(credit_note)

        with pytest.raises(CreditNoteStateError):
            self.service.update_draft(credit_note, reason='Changed my mind')

        with pytest.raises(CreditNoteStateError):
            self.service.soft_delete(credit_note)

    def test_soft_delete(self, credit_note):
        deleted_by = uuid.uuid4()

        deleted, items_deleted = self.service.soft_delete(credit_note, deleted_by=deleted_by, reason='Duplicate')

        assert items_deleted == 1
        assert deleted.status == CreditNoteStatus.CANCELLED
        assert deleted.deleted_by == deleted_by
        assert deleted.deletion_reason == 'Duplicate'
        assert not CreditNote.objects.filter(pk=credit_note.pk).exists()
        assert CreditNote.all_objects.filter(pk=credit_note.pk).exists()

        with pytest.raises(CreditNoteNotFoundError):
            self.service.get_credit_note(credit_note.pk)

    def test_credit_notes_for_invoice(self, credit_note, create_invoice):
        create_invoice(status=InvoiceStatus.PENDING)

        assert self.service.get_credit_notes_for_invoice(credit_note.original_invoice) == [credit_note]
