"""
API Exceptions - Custom Exception Classes for the Agency API

This module provides custom exception classes for standardized error handling:
- Validation exceptions (time strings, dates, enum values)
- Conflict exceptions (duplicate assignment, already converted proposal)
- Resource exceptions
- Storage failure during multi-row writes
- Standardized error responses

All exceptions follow a consistent format:
{
    "success": false,
    "message": "Human-readable message",
    "error_code": "MACHINE_READABLE_CODE",
    "errors": [...],
    "meta": {...}
}
"""

import logging
from typing import Any, Dict, List

from django.http import Http404
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================

class AgencyAPIException(APIException):
    """
    Base exception for all engine errors.

    Attributes:
        status_code: HTTP status code
        default_detail: Default error message
        default_code: Machine-readable error code
        error_code: Specific error code for this instance
        extra_data: Additional data to include in response
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = _("An unexpected error occurred.")
    default_code = "ERROR"

    def __init__(
        self,
        detail: str = None,
        code: str = None,
        extra_data: Dict = None,
        **kwargs
    ):
        self.error_code = code or self.default_code
        self.extra_data = extra_data or {}

        if detail is None:
            detail = str(self.default_detail)

        super().__init__(detail=detail, code=code)


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================

class InvalidInputError(AgencyAPIException):
    """Raised for general invalid input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Invalid input provided.")
    default_code = "INVALID_INPUT"


class InvalidTimeFormatError(InvalidInputError):
    """Raised when a due time string is not one of the accepted formats."""

    default_detail = _("Invalid Time Format. Use e.g. '9:30 PM', '9 PM' or '21:30'.")
    default_code = "INVALID_TIME_FORMAT"

    def __init__(self, value: Any = None, field_name: str = 'dueTime', **kwargs):
        extra_data = kwargs.pop('extra_data', {})
        extra_data['field'] = field_name
        if value is not None:
            extra_data['provided_value'] = str(value)
        super().__init__(extra_data=extra_data, **kwargs)


class DueDateParseError(InvalidInputError):
    """Raised when a date string cannot be parsed. Names the offending field."""

    default_detail = _("Invalid date.")
    default_code = "INVALID_DATE"

    def __init__(self, field_name: str = None, value: Any = None, **kwargs):
        detail = str(self.default_detail)
        extra_data = kwargs.pop('extra_data', {})

        if field_name:
            extra_data['field'] = field_name
            detail = f"Invalid date for field '{field_name}'."

        if value is not None:
            extra_data['provided_value'] = str(value)

        super().__init__(detail=detail, extra_data=extra_data, **kwargs)


class InvalidTimezoneError(InvalidInputError):
    """Raised when the caller-declared time zone is not a known IANA zone."""

    default_detail = _("Unknown time zone.")
    default_code = "INVALID_TIMEZONE"

    def __init__(self, zone_name: str = None, **kwargs):
        extra_data = kwargs.pop('extra_data', {})
        detail = str(self.default_detail)
        if zone_name:
            extra_data['timezone'] = str(zone_name)
            detail = f"Unknown time zone '{zone_name}'."
        super().__init__(detail=detail, extra_data=extra_data, **kwargs)


class NonexistentLocalTimeError(InvalidInputError):
    """Raised when the wall-clock time is skipped by a DST change in the zone."""

    default_code = "NONEXISTENT_LOCAL_TIME"

    def __init__(self, day: Any, time_of_day: Any, zone_name: str, field_name: str = 'dueTime'):
        detail = f"{time_of_day:%H:%M} does not exist on {day} in {zone_name} (daylight saving change)."
        super().__init__(
            detail=detail,
            extra_data={
                'field': field_name,
                'date': str(day),
                'time': f"{time_of_day:%H:%M}",
                'timezone': zone_name,
            },
        )


class MissingRequiredFieldError(AgencyAPIException):
    """Raised when a required field is missing."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Required field is missing.")
    default_code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field_name: str = None, **kwargs):
        detail = str(self.default_detail)
        extra_data = kwargs.pop('extra_data', {})

        if field_name:
            extra_data['field'] = field_name
            detail = f"Required field '{field_name}' is missing."

        super().__init__(detail=detail, extra_data=extra_data, **kwargs)


class InvalidFieldValueError(AgencyAPIException):
    """Raised when a field value is invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Invalid field value.")
    default_code = "INVALID_FIELD_VALUE"

    def __init__(
        self,
        field_name: str = None,
        value: Any = None,
        allowed_values: List = None,
        **kwargs
    ):
        detail = str(self.default_detail)
        extra_data = kwargs.pop('extra_data', {})

        if field_name:
            extra_data['field'] = field_name
            detail = f"Invalid value for field '{field_name}'."

        if value is not None:
            extra_data['provided_value'] = str(value)

        if allowed_values:
            extra_data['allowed_values'] = list(allowed_values)
            detail = f"{detail} Allowed values: {', '.join(map(str, allowed_values))}."

        super().__init__(detail=detail, extra_data=extra_data, **kwargs)


# =============================================================================
# RESOURCE EXCEPTIONS
# =============================================================================

def _identifiers(**values) -> Dict[str, str]:
    """Ids carried in the error meta, as strings, omitting the unset ones."""
    return {key: str(value) for key, value in values.items() if value is not None}


class ResourceNotFoundError(AgencyAPIException):
    """Raised when a requested row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = _("The requested resource was not found.")
    default_code = "NOT_FOUND"

    def __init__(self, resource_type: str = 'Resource', resource_id: Any = None, **kwargs):
        detail = f"{resource_type} not found."
        if resource_id is not None:
            detail = f"{resource_type} with ID '{resource_id}' not found."
        extra_data = {'resource_type': resource_type}
        extra_data.update(_identifiers(resource_id=resource_id))
        super().__init__(detail=detail, extra_data=extra_data, **kwargs)


class ConflictError(AgencyAPIException):
    """Base for writes refused because of what is already stored."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = _("The request conflicts with the stored state.")
    default_code = "CONFLICT"


class DuplicateAssignmentError(ConflictError):
    """Raised when a team member is already assigned to the task."""

    default_detail = _("This team member is already assigned to the task.")
    default_code = "DUPLICATE_ASSIGNMENT"

    def __init__(self, task_id: Any = None, team_member_id: Any = None):
        super().__init__(extra_data=_identifiers(task_id=task_id, team_member_id=team_member_id))


class AlreadyConvertedError(ConflictError):
    """Raised when a proposal has already been converted into a project."""

    default_detail = _("This proposal has already been converted to a project.")
    default_code = "ALREADY_CONVERTED"

    def __init__(self, proposal_id: Any = None, project_id: Any = None):
        super().__init__(extra_data=_identifiers(proposal_id=proposal_id, project_id=project_id))


class NoApprovedItemsError(AgencyAPIException):
    """Raised when converting a proposal that has no approved items."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = _("The proposal has no approved items to convert.")
    default_code = "NO_APPROVED_ITEMS"

    def __init__(self, proposal_id: Any = None):
        super().__init__(extra_data=_identifiers(proposal_id=proposal_id))


# =============================================================================
# STORAGE EXCEPTIONS
# =============================================================================

class ConversionFailedError(AgencyAPIException):
    """Raised when storage fails mid-conversion. Nothing was persisted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = _("Converting the proposal failed. No changes were saved.")
    default_code = "CONVERSION_FAILED"

    def __init__(self, proposal_id: Any = None):
        super().__init__(extra_data=_identifiers(proposal_id=proposal_id))


# =============================================================================
# EXCEPTION HANDLER
# =============================================================================

def _envelope(message, error_code, errors=None, meta=None) -> Dict:
    meta = dict(meta or {})
    meta['timestamp'] = timezone.now().isoformat()
    return {
        "success": False,
        "data": None,
        "message": str(message),
        "error_code": error_code,
        "errors": errors or [],
        "meta": meta,
    }


def _field_errors(detail) -> List[Dict]:
    """Flatten a serializer error detail into [{field, messages}]."""
    if isinstance(detail, dict):
        return [
            {"field": field, "messages": msgs if isinstance(msgs, list) else [str(msgs)]}
            for field, msgs in detail.items()
        ]
    if isinstance(detail, list):
        return [{"field": "non_field_errors", "messages": [str(m) for m in detail]}]
    return []


def _describe(exc):
    """Message, error code, field errors and extra meta for a handled exception."""
    if isinstance(exc, AgencyAPIException):
        return exc.detail, exc.error_code, [], exc.extra_data
    if isinstance(exc, ValidationError):
        if isinstance(exc.detail, list):
            message = exc.detail[0] if exc.detail else "Validation failed."
        elif isinstance(exc.detail, dict):
            message = "Validation failed."
        else:
            message = exc.detail
        return message, "VALIDATION_ERROR", _field_errors(exc.detail), {}
    if isinstance(exc, Http404):
        return "The requested resource was not found.", "NOT_FOUND", [], {}
    message = exc.detail if hasattr(exc, 'detail') else exc
    return message, str(getattr(exc, 'default_code', 'ERROR')).upper(), [], {}


def agency_exception_handler(exc, context):
    """
    DRF exception handler producing the engine's error envelope.

    {
        "success": false,
        "data": null,
        "message": "Error description",
        "error_code": "MACHINE_CODE",
        "errors": [{"field": ..., "messages": [...]}],
        "meta": {"timestamp": "ISO8601", "path": "/api/...", ...extra_data}
    }
    """
    response = exception_handler(exc, context)

    if response is None:
        logger.exception(f"Unhandled exception: {exc}")
        return Response(
            _envelope("An unexpected error occurred.", "INTERNAL_ERROR"),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    message, error_code, errors, extra = _describe(exc)
    if response.status_code >= 500:
        logger.error(f"{error_code}: {message}")

    meta = dict(extra)
    request = context.get('request')
    if request is not None:
        meta['path'] = request.path

    response.data = _envelope(message, error_code, errors, meta)
    return response
