"""
API Middleware - Request Processing for the Agency API

This module provides middleware classes for API request/response processing:
- RequestIDMiddleware: Generates unique request IDs for tracing
- DeclaredTimezoneMiddleware: Captures the caller's IANA time zone header

Request IDs enable debugging and log correlation.
"""

import logging
import uuid

from django.http import HttpRequest, HttpResponse
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


# =============================================================================
# REQUEST ID MIDDLEWARE
# =============================================================================

class RequestIDMiddleware(MiddlewareMixin):
    """
    Middleware that generates and attaches a unique request ID to each request.

    Features:
    - Generates UUID4 request IDs for all requests
    - Respects existing X-Request-ID header from client/load balancer
    - Adds X-Request-ID header to all responses
    - Makes request ID available as request.request_id
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    RESPONSE_HEADER = 'X-Request-ID'

    def process_request(self, request: HttpRequest) -> None:
        """
        Generate or extract request ID and attach to request object.
        """
        request_id = request.META.get(self.REQUEST_ID_HEADER)

        if not request_id:
            request_id = str(uuid.uuid4())

        request.request_id = request_id

        logger.debug(f"Request {request_id}: {request.method} {request.path}")

    def process_response(
        self, request: HttpRequest, response: HttpResponse
    ) -> HttpResponse:
        """
        Add request ID header to response for client correlation.
        """
        request_id = getattr(request, 'request_id', None)

        if request_id:
            response[self.RESPONSE_HEADER] = request_id

        return response


# =============================================================================
# DECLARED TIME ZONE MIDDLEWARE
# =============================================================================

class DeclaredTimezoneMiddleware(MiddlewareMixin):
    """
    Attach the caller-declared time zone to the request.

    Browsers send their IANA zone (e.g. "America/Vancouver") in the
    X-Timezone header. The value is not validated here; the due-date
    normalizer rejects unknown zones when it is used.
    """

    TIMEZONE_HEADER = 'HTTP_X_TIMEZONE'

    def process_request(self, request: HttpRequest) -> None:
        request.declared_timezone = request.META.get(self.TIMEZONE_HEADER) or None


def get_declared_timezone(request, data=None):
    """
    Return the zone the caller declared for this request.

    A "timezone" key in the request body takes precedence over the header.
    """
    if data is not None:
        zone = data.get('timezone')
        if zone:
            return zone
    return getattr(request, 'declared_timezone', None)
