# apps/core/tasks/invoice_tasks.py
"""
Invoice Celery Tasks

Background tasks for invoice operations.
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='flightdesk.mark_overdue_invoices')
def mark_overdue_invoices():
    """
    Mark pending invoices past their due date as overdue.

    Runs daily from the beat schedule.
    """
    from ..services.invoice_service import InvoiceService

    count = InvoiceService().mark_overdue_invoices()

    logger.info(f"Marked {count} invoices as overdue")

    return {'marked_overdue': count}
