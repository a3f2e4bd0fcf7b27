# apps/core/services/report_service.py
"""
Report Service

CSV exports of operational data.
"""

import io
import csv
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.utils import timezone

from apps.core.calculations.membership import calculate_membership_status, get_status_text
from apps.core.models import (
    FlightAuthorization,
    Invoice,
    Membership,
    Observation,
    Transaction,
)
from . import ReportError

logger = logging.getLogger(__name__)

Column = Tuple[str, Callable[[Any], Any]]


def _fmt_date(value) -> str:
    if not value:
        return ''
    if hasattr(value, 'date') and callable(value.date):
        value = timezone.localtime(value) if timezone.is_aware(value) else value
        return value.strftime('%Y-%m-%d %H:%M')
    return value.strftime('%Y-%m-%d')


def _text(value) -> str:
    return '' if value is None else str(value)


REPORT_COLUMNS: Dict[str, List[Column]] = {
    'invoices': [
        ('Invoice Number', lambda i: i.invoice_number),
        ('Issue Date', lambda i: _fmt_date(i.issue_date)),
        ('Due Date', lambda i: _fmt_date(i.due_date)),
        ('User', lambda i: _text(i.user_id)),
        ('Reference', lambda i: _text(i.reference)),
        ('Status', lambda i: i.get_status_display()),
        ('Subtotal', lambda i: _text(i.subtotal)),
        ('Tax', lambda i: _text(i.tax_total)),
        ('Total', lambda i: _text(i.total_amount)),
        ('Paid', lambda i: _text(i.total_paid)),
        ('Balance Due', lambda i: _text(i.balance_due)),
    ],
    'memberships': [
        ('User', lambda m: _text(m.user_id)),
        ('Membership Type', lambda m: m.membership_type.name),
        ('Start Date', lambda m: _fmt_date(m.start_date)),
        ('Expiry Date', lambda m: _fmt_date(m.expiry_date)),
        ('Status', lambda m: get_status_text(calculate_membership_status(m))),
        ('Fee Paid', lambda m: 'Yes' if m.fee_paid else 'No'),
        ('Amount Paid', lambda m: _text(m.amount_paid)),
        ('Auto Renew', lambda m: 'Yes' if m.auto_renew else 'No'),
    ],
    'observations': [
        ('Reported Date', lambda o: _fmt_date(o.reported_date)),
        ('Aircraft', lambda o: _text(o.aircraft_id)),
        ('Name', lambda o: o.name),
        ('Priority', lambda o: o.get_priority_display()),
        ('Stage', lambda o: o.get_stage_display()),
        ('Reported By', lambda o: _text(o.reported_by)),
        ('Resolved At', lambda o: _fmt_date(o.resolved_at)),
        ('Resolution Comments', lambda o: _text(o.resolution_comments)),
    ],
    'flight_authorizations': [
        ('Flight Date', lambda a: _fmt_date(a.flight_date)),
        ('Student', lambda a: _text(a.student_id)),
        ('Aircraft', lambda a: _text(a.aircraft_id)),
        ('Purpose', lambda a: a.get_purpose_of_flight_display() if a.purpose_of_flight else ''),
        ('Status', lambda a: a.get_status_display()),
        ('Submitted At', lambda a: _fmt_date(a.submitted_at)),
        ('Approved At', lambda a: _fmt_date(a.approved_at)),
        ('Approving Instructor', lambda a: _text(a.approving_instructor_id)),
        ('Rejection Reason', lambda a: _text(a.rejection_reason)),
    ],
    'transactions': [
        ('Date', lambda t: _fmt_date(t.created_at)),
        ('User', lambda t: _text(t.user_id)),
        ('Type', lambda t: t.get_transaction_type_display()),
        ('Category', lambda t: t.get_category_display()),
        ('Amount', lambda t: _text(t.amount)),
        ('Reference', lambda t: _text(t.reference_number)),
        ('Description', lambda t: t.description),
        ('Status', lambda t: t.get_status_display()),
    ],
}

# Report type -> (queryset factory, date field used for the range filter)
REPORT_SOURCES = {
    'invoices': (lambda: Invoice.objects.order_by('-issue_date', 'invoice_number'), 'issue_date'),
    'memberships': (
        lambda: Membership.objects.select_related('membership_type').order_by('-start_date'),
        'start_date',
    ),
    'observations': (lambda: Observation.objects.order_by('-reported_date'), 'reported_date'),
    'flight_authorizations': (
        lambda: FlightAuthorization.objects.order_by('-flight_date'),
        'flight_date__date',
    ),
    'transactions': (lambda: Transaction.objects.order_by('-created_at'), 'created_at__date'),
}


class ReportService:
    """Builds CSV reports. Header row plain, every data cell quoted."""

    REPORT_TYPES = tuple(REPORT_COLUMNS.keys())

    def get_filename(self, report_type: str, on: date = None) -> str:
        on = on or timezone.localdate()
        return f"{report_type.replace('_', '-')}-report-{on:%Y-%m-%d}.csv"

    def get_rows(
        self,
        report_type: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[List[str]]:
        if report_type not in REPORT_COLUMNS:
            raise ReportError(
                f"Unknown report type: {report_type}",
                errors=[{'field': 'report', 'message': f"Must be one of: {', '.join(self.REPORT_TYPES)}"}]
            )
        if start_date and end_date and start_date > end_date:
            raise ReportError(
                'Start date must be on or before end date',
                errors=[{'field': 'start_date', 'message': 'Start date must be on or before end date'}]
            )

        factory, date_field = REPORT_SOURCES[report_type]
        queryset = factory()
        if start_date:
            queryset = queryset.filter(**{f"{date_field}__gte": start_date})
        if end_date:
            queryset = queryset.filter(**{f"{date_field}__lte": end_date})

        columns = REPORT_COLUMNS[report_type]
        return [[_text(getter(obj)) for _, getter in columns] for obj in queryset]

    def export_csv(
        self,
        report_type: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> str:
        rows = self.get_rows(report_type, start_date, end_date)
        headers = [header for header, _ in REPORT_COLUMNS[report_type]]

        output = io.StringIO()
        output.write(','.join(headers) + '\n')
        writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerows(rows)

        logger.info(
            f"Report exported: {report_type}",
            extra={'report_type': report_type, 'rows': len(rows)}
        )

        return output.getvalue()
