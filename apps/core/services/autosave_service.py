# apps/core/services/autosave_service.py
"""
Draft Autosave

Debounced background saving of flight authorization drafts.

Every edit replaces the pending draft in the cache under a fresh token and
queues a delayed task carrying that token. When the task fires it only
saves if its token is still the latest, so a burst of edits produces one
save of the last state.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Dict

from django.conf import settings
from django.core.cache import cache

from . import AuthorizationNotFoundError, FlightDeskServiceError
from .flight_authorization_service import (
    FlightAuthorizationService,
    draft_save_guard,
    strip_instructor_fields,
)

logger = logging.getLogger(__name__)


class AutosaveOutcome(str, Enum):
    SAVED = 'saved'
    SUPERSEDED = 'superseded'
    RESCHEDULED = 'rescheduled'
    MISSING = 'missing'
    FAILED = 'failed'


class DraftAutosaveScheduler:
    """Schedules and runs debounced draft saves."""

    PENDING_KEY = 'flight_authorization:{id}:autosave'

    def __init__(self, authorization_service: FlightAuthorizationService = None):
        self.authorization_service = authorization_service or FlightAuthorizationService()
        self.debounce_seconds = settings.FLIGHTDESK.get('AUTOSAVE_DEBOUNCE_SECONDS', 2)
        self.lock_timeout = settings.FLIGHTDESK.get('AUTOSAVE_LOCK_TIMEOUT', 30)

    def _key(self, authorization_id) -> str:
        return self.PENDING_KEY.format(id=authorization_id)

    def schedule(self, authorization_id: uuid.UUID, data: Dict[str, Any], user=None) -> str:
        """
        Queue a save of data, replacing any save not yet run.

        The task saves without a user, so fields user may not write are
        dropped here.

        Returns:
            Token identifying this save
        """
        from apps.core.tasks.authorization_tasks import autosave_flight_authorization

        if user is not None:
            data = strip_instructor_fields(data, user)

        token = uuid.uuid4().hex
        # Outlives the debounce window plus any waits on the save lock
        timeout = self.debounce_seconds + self.lock_timeout * 2
        cache.set(self._key(authorization_id), {'token': token, 'data': data}, timeout)

        autosave_flight_authorization.apply_async(
            args=[str(authorization_id), token],
            countdown=self.debounce_seconds,
        )

        logger.debug(
            f"Autosave scheduled for flight authorization {authorization_id}",
            extra={'authorization_id': str(authorization_id), 'token': token}
        )

        return token

    def is_latest(self, authorization_id: uuid.UUID, token: str) -> bool:
        pending = cache.get(self._key(authorization_id))
        return bool(pending) and pending.get('token') == token

    def cancel(self, authorization_id: uuid.UUID) -> None:
        cache.delete(self._key(authorization_id))

    def run(self, authorization_id: uuid.UUID, token: str) -> AutosaveOutcome:
        """Save the pending draft if token is still the latest one."""
        pending = cache.get(self._key(authorization_id))
        if not pending or pending.get('token') != token:
            return AutosaveOutcome.SUPERSEDED

        with draft_save_guard(authorization_id) as acquired:
            if not acquired:
                from apps.core.tasks.authorization_tasks import autosave_flight_authorization

                autosave_flight_authorization.apply_async(
                    args=[str(authorization_id), token],
                    countdown=self.debounce_seconds,
                )
                logger.debug(f"Save in flight for {authorization_id}, autosave rescheduled")
                return AutosaveOutcome.RESCHEDULED

            try:
                authorization = self.authorization_service.get_authorization(authorization_id)
            except AuthorizationNotFoundError:
                cache.delete(self._key(authorization_id))
                return AutosaveOutcome.MISSING

            try:
                self.authorization_service.apply_draft(
                    authorization, pending['data'], autosave=True
                )
            except FlightDeskServiceError as e:
                logger.warning(
                    f"Autosave failed for flight authorization {authorization_id}: {e}",
                    extra={'authorization_id': str(authorization_id), 'errors': getattr(e, 'errors', None)}
                )
                self._clear_if_latest(authorization_id, token)
                return AutosaveOutcome.FAILED

        self._clear_if_latest(authorization_id, token)
        return AutosaveOutcome.SAVED

    def _clear_if_latest(self, authorization_id, token: str) -> None:
        if self.is_latest(authorization_id, token):
            cache.delete(self._key(authorization_id))
