# apps/api/views/base.py
"""
Base Views and Mixins

Common functionality for flightdesk API views.
"""

import logging

from apps.core.calculations.invoice import InvoiceCalculationError
from apps.core.services import (
    FlightDeskServiceError,
    NotFoundError,
    ValidationError,
    StateError,
    PermissionDeniedError,
    ConflictError,
    InvoiceLockedError,
    AuthorizationRequiredError,
)
from shared.common.exceptions import (
    AuthorizationRequiredException,
    BadRequestException,
    CalculationFailedException,
    ConflictException,
    ForbiddenException,
    InvoiceLockedException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


def to_api_exception(exc: Exception):
    """Translate a service layer exception into the matching API exception."""

    if isinstance(exc, InvoiceCalculationError):
        return CalculationFailedException(detail=str(exc))

    if isinstance(exc, NotFoundError):
        return NotFoundException(detail=str(exc))

    if isinstance(exc, ValidationError):
        return ValidationException(errors=exc.errors, detail=str(exc))

    if isinstance(exc, PermissionDeniedError):
        return ForbiddenException(detail=str(exc))

    if isinstance(exc, InvoiceLockedError):
        return InvoiceLockedException(detail=str(exc))

    if isinstance(exc, AuthorizationRequiredError):
        return AuthorizationRequiredException(detail=str(exc))

    if isinstance(exc, ConflictError):
        return ConflictException(detail=str(exc))

    if isinstance(exc, StateError):
        return BadRequestException(detail=str(exc), error_code='INVALID_STATE')

    return BadRequestException(detail=str(exc))


class ServiceExceptionMixin:
    """Mixin for handling service layer exceptions."""

    def handle_exception(self, exc):
        """Convert service exceptions to the standard error envelope."""
        if isinstance(exc, (FlightDeskServiceError, InvoiceCalculationError)):
            logger.info(
                f"Service error: {exc}",
                extra={
                    'exception_type': type(exc).__name__,
                    'path': getattr(self.request, 'path', None),
                }
            )
            exc = to_api_exception(exc)
        return super().handle_exception(exc)


class RestrictedQuerysetMixin:
    """
    Limit students and members to their own records.

    owner_field names the model field holding the owning user's id.
    """

    owner_field = 'user_id'

    def restrict_queryset(self, queryset):
        user = self.request.user
        if getattr(user, 'is_restricted', True):
            return queryset.filter(**{self.owner_field: user.id})
        return queryset
