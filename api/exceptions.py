"""
API exception handlers.

This module provides custom exception handling for REST API responses.
"""

import logging
from typing import Any, Dict, Optional

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.domain.exceptions import (
    DomainException,
    InvalidDomainError,
    InvalidLicenseKeyError,
    InvalidLicenseStatusError,
    LicenseExpiredError,
    LicenseInactiveError,
    LicenseNotFoundError,
    RateLimitExceededError,
    ReleaseNotFoundError,
    SignatureInvalidError,
    TransientStorageError,
)
from core.metrics import errors_total

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    ((InvalidLicenseKeyError, InvalidDomainError), status.HTTP_400_BAD_REQUEST),
    ((LicenseNotFoundError, ReleaseNotFoundError), status.HTTP_404_NOT_FOUND),
    (
        (SignatureInvalidError, LicenseExpiredError, LicenseInactiveError),
        status.HTTP_403_FORBIDDEN,
    ),
    ((InvalidLicenseStatusError,), status.HTTP_409_CONFLICT),
    ((RateLimitExceededError,), status.HTTP_429_TOO_MANY_REQUESTS),
    ((TransientStorageError,), status.HTTP_503_SERVICE_UNAVAILABLE),
)

# Seconds clients should wait before retrying after a storage failure.
STORAGE_RETRY_AFTER = 5


def custom_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """Custom exception handler for REST API."""
    trace_id = _get_trace_id(context)

    if isinstance(exc, DomainException):
        response = _handle_domain_exception(exc, context, trace_id)
        if trace_id:
            response["X-Trace-ID"] = trace_id
        return response

    if isinstance(exc, APIException):
        response = exception_handler(exc, context)
        if response:
            code = (
                exc.default_code.upper().replace("-", "_")
                if hasattr(exc, "default_code")
                else "API_ERROR"
            )
            message = (
                response.data.get("detail", exc.default_detail)
                if isinstance(response.data, dict)
                else exc.default_detail
            )
            response.data = {"error": {"code": code, "message": message}}
            if trace_id:
                response["X-Trace-ID"] = trace_id
            return response

    if isinstance(exc, Http404):
        response = Response(
            {"error": {"code": "NOT_FOUND", "message": "Resource not found"}},
            status=status.HTTP_404_NOT_FOUND,
        )
        if trace_id:
            response["X-Trace-ID"] = trace_id
        return response

    return _handle_unexpected_exception(exc, context, trace_id)


def status_code_for(exc: DomainException) -> int:
    """
    Map a domain exception to its HTTP status code.

    Args:
        exc: Domain exception

    Returns:
        HTTP status code (400 for unmapped exceptions)
    """
    for exception_types, status_code in _STATUS_CODES:
        if isinstance(exc, exception_types):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _get_trace_id(context: Dict[str, Any]) -> Optional[str]:
    """Extract trace ID from request context."""
    request = context.get("request")
    if not request:
        return None
    return getattr(request, "trace_id", getattr(request, "correlation_id", None))


def _endpoint(context: Dict[str, Any]) -> str:
    request = context.get("request")
    return getattr(request, "path", "unknown") if request else "unknown"


def _handle_domain_exception(
    exc: DomainException, context: Dict[str, Any], trace_id: Optional[str]
) -> Response:
    """Handle domain-specific exceptions."""
    status_code = status_code_for(exc)
    errors_total.labels(error_type=exc.code, endpoint=_endpoint(context)).inc()

    logger.warning("Domain exception: %s - %s", exc.code, exc.message, extra={"trace_id": trace_id})
    response = Response({"error": {"code": exc.code, "message": exc.message}}, status=status_code)

    if isinstance(exc, RateLimitExceededError) and exc.retry_after:
        response["Retry-After"] = str(exc.retry_after)
    elif isinstance(exc, TransientStorageError):
        response["Retry-After"] = str(STORAGE_RETRY_AFTER)
    return response


def _handle_unexpected_exception(
    exc: Exception, context: Dict[str, Any], trace_id: Optional[str]
) -> Response:
    """Handle unexpected or untracked exceptions."""
    logger.error("Unexpected error: %s", exc, extra={"trace_id": trace_id}, exc_info=True)
    errors_total.labels(error_type=type(exc).__name__, endpoint=_endpoint(context)).inc()
    response = exception_handler(exc, context)
    if not response:
        response = Response(
            {"error": {"code": "INTERNAL_ERROR", "message": "An internal error occurred"}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    else:
        response.data = {
            "error": {"code": "INTERNAL_ERROR", "message": "An internal error occurred"}
        }
    if trace_id:
        response["X-Trace-ID"] = trace_id
    return response
