"""
Domain exceptions.

Domain exceptions represent validation failures, storage failures and
transport-level denials. Expected business outcomes (a key that does not
resolve, an exhausted activation limit) are returned as result DTOs instead.
"""


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    def __init__(self, message: str, code: str = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class LicenseException(DomainException):
    """Base exception for license-related errors."""

    pass


class LicenseNotFoundError(LicenseException):
    """Raised when a license key or id does not resolve."""

    def __init__(self, message: str = "License not found"):
        super().__init__(message, code="LICENSE_NOT_FOUND")


class LicenseExpiredError(LicenseException):
    """Raised when a license is past its grace period."""

    def __init__(self, message: str = "License has expired"):
        super().__init__(message, code="LICENSE_EXPIRED")


class LicenseInactiveError(LicenseException):
    """Raised when a license is inactive, suspended or revoked."""

    def __init__(self, message: str = "License is not active"):
        super().__init__(message, code="LICENSE_INACTIVE")


class InvalidLicenseKeyError(LicenseException):
    """Raised when a license key is malformed."""

    def __init__(self, message: str = "Invalid license key format"):
        super().__init__(message, code="INVALID_LICENSE_KEY")


class LicenseKeyGenerationError(LicenseException):
    """Raised when no unique license key could be generated."""

    def __init__(self, message: str = "Could not generate a unique license key"):
        super().__init__(message, code="LICENSE_KEY_GENERATION_FAILED")


class InvalidLicenseStatusError(LicenseException):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, message: str = "Invalid license status"):
        super().__init__(message, code="INVALID_LICENSE_STATUS")


class ActivationException(DomainException):
    """Base exception for activation-related errors."""

    pass


class InvalidDomainError(ActivationException):
    """Raised when a domain or URL cannot be normalized to a hostname."""

    def __init__(self, message: str = "Invalid domain"):
        super().__init__(message, code="INVALID_DOMAIN")


class DownloadException(DomainException):
    """Base exception for download-related errors."""

    pass


class SignatureInvalidError(DownloadException):
    """Raised when a download token fails verification or has expired."""

    def __init__(self, message: str = "Download link is invalid or has expired"):
        super().__init__(message, code="SIGNATURE_INVALID")


class ReleaseNotFoundError(DownloadException):
    """Raised when a release file does not exist for the license's product."""

    def __init__(self, message: str = "Release not found"):
        super().__init__(message, code="RELEASE_NOT_FOUND")


class RateLimitExceededError(DomainException):
    """Raised when a client identifier is rate limited or blocked."""

    def __init__(self, message: str = "Too many requests", retry_after: int = 0):
        super().__init__(message, code="RATE_LIMIT_EXCEEDED")
        self.retry_after = retry_after


class InfrastructureException(DomainException):
    """Base exception for storage and cache failures."""

    pass


class TransientStorageError(InfrastructureException):
    """Raised when storage is unavailable or timed out; safe to retry."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message, code="SERVICE_UNAVAILABLE")


class CacheUnavailableError(InfrastructureException):
    """Raised by cache adapters when the backing store cannot be reached."""

    def __init__(self, message: str = "Cache backend unavailable"):
        super().__init__(message, code="CACHE_UNAVAILABLE")
