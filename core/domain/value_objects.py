"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
from enum import Enum


class LicenseStatus(Enum):
    """Administrative license status, the only status that is stored."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    REVOKED = "revoked"

    def __str__(self) -> str:
        """Return status as string."""
        return self.value


class EffectiveStatus(Enum):
    """
    Status derived from the administrative status, the dates and the clock.

    Never stored.
    """

    ACTIVE = "active"
    GRACE = "grace"
    EXPIRED = "expired"
    INACTIVE = "inactive"

    @property
    def is_usable(self) -> bool:
        """Whether a license in this status may activate or validate."""
        return self in (EffectiveStatus.ACTIVE, EffectiveStatus.GRACE)

    def __str__(self) -> str:
        """Return status as string."""
        return self.value


class DenialReason(Enum):
    """Machine-readable reason attached to an unsuccessful result."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    INACTIVE = "inactive"
    ACTIVATION_LIMIT = "activation_limit"
    DOMAIN_NOT_ACTIVATED = "domain_not_activated"
    RELEASE_NOT_FOUND = "release_not_found"
    SLUG_MISMATCH = "slug_mismatch"
    NO_RELEASE = "no_release"
    UP_TO_DATE = "up_to_date"

    @classmethod
    def for_status(cls, status: EffectiveStatus) -> "DenialReason":
        """
        Map an unusable effective status to its denial reason.

        Args:
            status: Effective status that is not usable

        Returns:
            EXPIRED for expired licenses, INACTIVE otherwise
        """
        if status == EffectiveStatus.EXPIRED:
            return cls.EXPIRED
        return cls.INACTIVE

    def __str__(self) -> str:
        """Return reason as string."""
        return self.value
