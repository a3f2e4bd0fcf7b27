# apps/core/tasks/__init__.py
"""
Flightdesk Celery Tasks
"""

from .authorization_tasks import autosave_flight_authorization
from .invoice_tasks import mark_overdue_invoices

__all__ = [
    'autosave_flight_authorization',
    'mark_overdue_invoices',
]
