# apps/core/services/__init__.py
"""
Flightdesk Business Logic
"""


# Custom Exceptions
class FlightDeskServiceError(Exception):
    """Base exception for flightdesk service errors."""
    pass


class NotFoundError(FlightDeskServiceError):
    """Requested record does not exist."""
    pass


class ValidationError(FlightDeskServiceError):
    """
    Input failed validation.

    errors is a list of {'field': ..., 'message': ...} dicts.
    """

    def __init__(self, message: str = 'Validation failed', errors: list = None):
        super().__init__(message)
        self.errors = errors or []


class StateError(FlightDeskServiceError):
    """Operation not allowed in the record's current state."""
    pass


class PermissionDeniedError(FlightDeskServiceError):
    """Caller's role does not allow the operation."""
    pass


class ConflictError(FlightDeskServiceError):
    """Operation conflicts with existing data."""
    pass


class InvoiceNotFoundError(NotFoundError):
    """Invoice not found."""
    pass


class InvoiceLockedError(StateError):
    """Invoice can no longer be edited."""
    pass


class InvoiceStateError(StateError):
    """Invalid invoice status transition."""
    pass


class CreditNoteNotFoundError(NotFoundError):
    """Credit note not found."""
    pass


class CreditNoteStateError(StateError):
    """Credit note operation not allowed in its current status."""
    pass


class AuthorizationNotFoundError(NotFoundError):
    """Flight authorization not found."""
    pass


class AuthorizationStateError(StateError):
    """Invalid flight authorization transition."""
    pass


class AuthorizationValidationError(ValidationError):
    """Flight authorization failed the submission checks."""
    pass


class AuthorizationRequiredError(ConflictError):
    """Booking cannot be checked out without an approved authorization or override."""
    pass


class BookingNotFoundError(NotFoundError):
    """Booking not found."""
    pass


class MembershipNotFoundError(NotFoundError):
    """Membership not found."""
    pass


class MembershipStateError(StateError):
    """Membership operation not allowed."""
    pass


class ObservationStateError(StateError):
    """Observation operation not allowed."""
    pass


class ReportError(ValidationError):
    """Report cannot be generated."""
    pass


from .settings_service import SettingsService  # noqa: E402
from .transaction_service import TransactionService  # noqa: E402
from .invoice_service import InvoiceService  # noqa: E402
from .credit_note_service import CreditNoteService  # noqa: E402
from .flight_authorization_service import FlightAuthorizationService  # noqa: E402
from .autosave_service import DraftAutosaveScheduler  # noqa: E402
from .booking_service import BookingService  # noqa: E402
from .membership_service import MembershipService  # noqa: E402
from .observation_service import ObservationService  # noqa: E402
from .report_service import ReportService  # noqa: E402


__all__ = [
    # Services
    'SettingsService',
    'TransactionService',
    'InvoiceService',
    'CreditNoteService',
    'FlightAuthorizationService',
    'DraftAutosaveScheduler',
    'BookingService',
    'MembershipService',
    'ObservationService',
    'ReportService',

    # Exceptions
    'FlightDeskServiceError',
    'NotFoundError',
    'ValidationError',
    'StateError',
    'PermissionDeniedError',
    'ConflictError',
    'InvoiceNotFoundError',
    'InvoiceLockedError',
    'InvoiceStateError',
    'CreditNoteNotFoundError',
    'CreditNoteStateError',
    'AuthorizationNotFoundError',
    'AuthorizationStateError',
    'AuthorizationValidationError',
    'AuthorizationRequiredError',
    'BookingNotFoundError',
    'MembershipNotFoundError',
    'MembershipStateError',
    'ObservationStateError',
    'ReportError',
]
