# shared/common/exceptions.py
"""
Custom Exception Classes and Exception Handler
"""

import logging
import traceback
from typing import Dict, Any, Optional
from rest_framework import status
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework.exceptions import APIException
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================

class BaseAPIException(APIException):
    """Base exception class for all custom API exceptions"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An unexpected error occurred.'
    default_code = 'error'
    error_code = 'INTERNAL_ERROR'

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        error_code: Optional[str] = None,
        extra_data: Optional[Dict] = None
    ):
        super().__init__(detail=detail, code=code)
        self.error_code = error_code or self.error_code
        self.extra_data = extra_data or {}


# =============================================================================
# CLIENT ERRORS (4xx)
# =============================================================================

class BadRequestException(BaseAPIException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Bad request.'
    default_code = 'bad_request'
    error_code = 'BAD_REQUEST'


class ValidationException(BaseAPIException):
    """400 Validation Error"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Validation error.'
    default_code = 'validation_error'
    error_code = 'VALIDATION_ERROR'

    def __init__(self, errors: Any, detail: str = None):
        super().__init__(detail=detail)
        self.extra_data = {'errors': errors}


class ForbiddenException(BaseAPIException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'
    error_code = 'FORBIDDEN'


class NotFoundException(BaseAPIException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'The requested resource was not found.'
    default_code = 'not_found'
    error_code = 'NOT_FOUND'


class ConflictException(BaseAPIException):
    """409 Conflict"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A conflict occurred with the current state of the resource.'
    default_code = 'conflict'
    error_code = 'CONFLICT'


# =============================================================================
# DOMAIN-SPECIFIC EXCEPTIONS
# =============================================================================

class InvoiceLockedException(ConflictException):
    """Invoice is no longer editable"""
    default_detail = 'The invoice can no longer be modified.'
    error_code = 'INVOICE_LOCKED'


class AuthorizationRequiredException(ConflictException):
    """Solo flight needs an approved authorization or an override"""
    default_detail = 'An approved flight authorization or override is required before check-out.'
    error_code = 'AUTHORIZATION_REQUIRED'


class CalculationFailedException(BadRequestException):
    """Invoice amounts could not be calculated"""
    default_detail = 'Failed to calculate invoice amounts.'
    default_code = 'calculation_failed'
    error_code = 'CALCULATION_FAILED'




# =============================================================================
# EXCEPTION HANDLER
# =============================================================================

DEFAULT_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: 'VALIDATION_ERROR',
    status.HTTP_401_UNAUTHORIZED: 'UNAUTHORIZED',
    status.HTTP_403_FORBIDDEN: 'FORBIDDEN',
    status.HTTP_404_NOT_FOUND: 'NOT_FOUND',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'METHOD_NOT_ALLOWED',
}


def error_body(code: str, message: str, request_id: Optional[str] = None, **extra) -> Dict[str, Any]:
    """Build the {'success': False, 'error': {...}} envelope."""
    error = {'code': code, 'message': message}
    error.update({key: value for key, value in extra.items() if value is not None})
    error['request_id'] = request_id
    return {'success': False, 'error': error}


def custom_exception_handler(exc, context) -> Optional[Response]:
    """
    DRF exception handler.

    Every error leaves the API in the same envelope, carrying the request
    id set by RequestIDMiddleware.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    response = exception_handler(exc, context)
    if response is not None:
        return format_error_response(exc, response, request_id)

    if isinstance(exc, DjangoValidationError):
        details = exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages}
        return Response(
            error_body('VALIDATION_ERROR', 'Validation error', request_id, details=details),
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, Http404):
        return Response(
            error_body('NOT_FOUND', str(exc) or 'Resource not found', request_id),
            status=status.HTTP_404_NOT_FOUND
        )

    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            'request_id': request_id,
            'exception_type': type(exc).__name__,
        }
    )

    if settings.DEBUG:
        body = error_body(
            'INTERNAL_ERROR', str(exc), request_id,
            type=type(exc).__name__,
            traceback=traceback.format_exc().split('\n'),
        )
    else:
        body = error_body('INTERNAL_ERROR', 'An unexpected error occurred. Please try again later.', request_id)
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def format_error_response(exc, response: Response, request_id: str = None) -> Response:
    """Rewrite a DRF-handled response into the error envelope."""
    error_code = getattr(exc, 'error_code', None) or DEFAULT_ERROR_CODES.get(response.status_code, 'ERROR')
    extra_data = getattr(exc, 'extra_data', {})

    details = None
    if extra_data.get('errors'):
        details = extra_data['errors']
    elif isinstance(response.data, dict) and 'detail' not in response.data:
        # Field errors from serializer validation
        details = response.data

    response.data = error_body(error_code, get_error_message(exc, response), request_id, details=details)
    return response


def get_error_message(exc, response: Response) -> str:
    detail = getattr(exc, 'detail', None)
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        return str(detail[0])
    if isinstance(detail, dict):
        return str(detail.get('detail', 'Validation error'))

    if isinstance(response.data, dict):
        return str(response.data.get('detail', response.data))
    return str(response.data)
