"""
Unit tests for the API exception handler.
"""

import pytest
from rest_framework.test import APIRequestFactory

from api.exceptions import STORAGE_RETRY_AFTER, custom_exception_handler, status_code_for
from core.domain.exceptions import (
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


@pytest.mark.parametrize(
    "exc, status_code",
    [
        (InvalidLicenseKeyError(), 400),
        (InvalidDomainError(), 400),
        (LicenseNotFoundError(), 404),
        (ReleaseNotFoundError(), 404),
        (SignatureInvalidError(), 403),
        (LicenseExpiredError(), 403),
        (LicenseInactiveError(), 403),
        (InvalidLicenseStatusError(), 409),
        (RateLimitExceededError(), 429),
        (TransientStorageError(), 503),
    ],
)
def test_status_code_for(exc, status_code):
    """Test domain exceptions map to HTTP status codes."""
    assert status_code_for(exc) == status_code


class TestCustomExceptionHandler:
    """Tests for custom_exception_handler."""

    @staticmethod
    def _context(path="/api/v1/license/activate"):
        request = APIRequestFactory().post(path)
        request.correlation_id = "corr-1"
        return {"request": request}

    def test_error_envelope(self):
        """Test domain errors use the error envelope."""
        response = custom_exception_handler(InvalidLicenseKeyError(), self._context())

        assert response.status_code == 400
        assert response.data == {
            "error": {"code": "INVALID_LICENSE_KEY", "message": "Invalid license key format"}
        }
        assert response["X-Trace-ID"] == "corr-1"

    def test_storage_errors_ask_clients_to_retry(self):
        """Test storage failures return 503 with Retry-After."""
        response = custom_exception_handler(TransientStorageError(), self._context())

        assert response.status_code == 503
        assert response["Retry-After"] == str(STORAGE_RETRY_AFTER)

    def test_rate_limit_retry_after(self):
        """Test rate limit errors carry their retry delay."""
        response = custom_exception_handler(
            RateLimitExceededError(retry_after=42), self._context()
        )

        assert response.status_code == 429
        assert response["Retry-After"] == "42"

    def test_unexpected_errors_are_masked(self):
        """Test unexpected errors do not leak their message."""
        response = custom_exception_handler(RuntimeError("db password is hunter2"), self._context())

        assert response.status_code == 500
        assert response.data["error"]["code"] == "INTERNAL_ERROR"
        assert "hunter2" not in str(response.data)
