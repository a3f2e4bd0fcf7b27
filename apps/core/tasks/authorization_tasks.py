# apps/core/tasks/authorization_tasks.py
"""
Flight Authorization Celery Tasks
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='flightdesk.autosave_flight_authorization')
def autosave_flight_authorization(authorization_id: str, token: str):
    """
    Save the pending draft for an authorization.

    Queued by DraftAutosaveScheduler.schedule with a short countdown. Does
    nothing if a newer edit has replaced the draft since.
    """
    from ..services.autosave_service import DraftAutosaveScheduler

    outcome = DraftAutosaveScheduler().run(authorization_id, token)

    logger.debug(f"Autosave for {authorization_id}: {outcome.value}")

    return outcome.value
