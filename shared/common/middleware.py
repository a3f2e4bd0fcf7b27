# shared/common/middleware.py
"""
Request Middleware

Request ids and access logging. The current request id is also kept in a
context variable so that RequestIDLogFilter can stamp it on every log
record written while the request is handled, including service logs.
"""

import uuid
import time
import logging
from contextvars import ContextVar
from typing import Callable, Optional
from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'

_current_request_id: ContextVar[Optional[str]] = ContextVar('flightdesk_request_id', default=None)


def get_request_id() -> Optional[str]:
    """Id of the request being handled, or None outside a request."""
    return _current_request_id.get()


class RequestIDLogFilter(logging.Filter):
    """Add request_id to log records that do not already carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'request_id'):
            record.request_id = get_request_id()
        return True


class RequestIDMiddleware:
    """
    Give each request an id, taken from X-Request-ID when the client sends
    one. The id is echoed back so client-side toasts can be matched to logs.
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.request_id = request_id

        token = _current_request_id.set(request_id)
        try:
            response = self.get_response(request)
        finally:
            _current_request_id.reset(token)

        response[REQUEST_ID_HEADER] = request_id
        return response


class LoggingMiddleware:
    """
    Access log: one record per API request, written once the response is
    ready so that the authenticated caller is known.
    """

    skip_prefixes = ('/health/', '/api/schema/', '/static/')

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if request.path.startswith(self.skip_prefixes):
            return self.get_response(request)

        start = time.monotonic()
        response = self.get_response(request)
        duration_ms = round((time.monotonic() - start) * 1000, 2)

        # DRF authenticates inside the view and copies the user back here
        user = getattr(request, 'user', None)
        authenticated = bool(user is not None and user.is_authenticated)

        log_method = logger.warning if response.status_code >= 400 else logger.info
        log_method(
            f"{request.method} {request.path} {response.status_code}",
            extra={
                'method': request.method,
                'path': request.path,
                'status_code': response.status_code,
                'duration_ms': duration_ms,
                'user_id': str(user.id) if authenticated else None,
                'roles': list(getattr(user, 'roles', [])) if authenticated else [],
                'ip_address': self.get_client_ip(request),
            }
        )

        response['X-Response-Time'] = f"{duration_ms:.2f}ms"
        return response

    def get_client_ip(self, request: HttpRequest) -> str:
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR', '')
