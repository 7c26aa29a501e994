"""
License domain entity.

This is the core domain entity representing a license.
It contains business logic and is independent of infrastructure.
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.domain.exceptions import InvalidLicenseStatusError
from core.domain.value_objects import EffectiveStatus, LicenseStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class License:
    """
    License domain entity.

    Represents one entitlement grant. Only the administrative status is
    stored; the effective status is derived from it, the dates and the
    clock on every call.
    """

    id: uuid.UUID
    owner_id: str
    product_id: str
    order_ref: Optional[str]
    key_hash: str
    verification_hash: str
    status: LicenseStatus
    expires_at: Optional[datetime]
    grace_until: Optional[datetime]
    max_activations: Optional[int]
    failed_attempts: int
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        """Validate license entity."""
        if not self.owner_id:
            raise ValueError("Owner ID is required")
        if not self.product_id:
            raise ValueError("Product ID is required")
        if not self.key_hash or len(self.key_hash) != 64:
            raise ValueError("Invalid key hash")
        if not self.verification_hash or len(self.verification_hash) != 64:
            raise ValueError("Invalid verification hash")
        if self.max_activations is not None and self.max_activations < 0:
            raise ValueError("Max activations cannot be negative")
        if self.grace_until is not None:
            if self.expires_at is None:
                raise ValueError("Grace period requires an expiration date")
            if self.grace_until < self.expires_at:
                raise ValueError("Grace period cannot end before expiration")

    @classmethod
    def create(
        cls,
        owner_id: str,
        product_id: str,
        key_hash: str,
        verification_hash: str,
        order_ref: Optional[str] = None,
        max_activations: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        grace_days: int = 0,
        license_id: Optional[uuid.UUID] = None,
    ) -> "License":
        """
        Create a new active License entity.

        Args:
            owner_id: Owner (customer) reference
            product_id: Product reference
            key_hash: Primary hash of the license key
            verification_hash: Verification hash derived from key_hash
            order_ref: Optional order or subscription reference
            max_activations: Activation limit; None or 0 means unlimited
            expires_at: Optional expiration datetime (None = perpetual)
            grace_days: Days the license stays usable after expiring
            license_id: Optional UUID (generated if not provided)

        Returns:
            License entity instance
        """
        now = _utcnow()
        grace_until = None
        if expires_at is not None and grace_days > 0:
            grace_until = expires_at + timedelta(days=grace_days)

        return cls(
            id=license_id or uuid.uuid4(),
            owner_id=str(owner_id),
            product_id=str(product_id),
            order_ref=order_ref,
            key_hash=key_hash,
            verification_hash=verification_hash,
            status=LicenseStatus.ACTIVE,
            expires_at=expires_at,
            grace_until=grace_until,
            max_activations=max_activations or None,
            failed_attempts=0,
            created_at=now,
            updated_at=now,
        )

    def effective_status(self, now: Optional[datetime] = None) -> EffectiveStatus:
        """
        Derive the effective status at a point in time.

        Revocation and suspension win over any date. Past the expiry the
        license is in grace until grace_until (inclusive), then expired.

        Args:
            now: Point in time (defaults to the current UTC time)

        Returns:
            EffectiveStatus
        """
        if self.status != LicenseStatus.ACTIVE:
            return EffectiveStatus.INACTIVE
        if self.expires_at is None:
            return EffectiveStatus.ACTIVE

        now = now or _utcnow()
        if now < self.expires_at:
            return EffectiveStatus.ACTIVE
        if self.grace_until is not None and now <= self.grace_until:
            return EffectiveStatus.GRACE
        return EffectiveStatus.EXPIRED

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """
        Check if the license may activate or validate.

        Args:
            now: Point in time (defaults to the current UTC time)

        Returns:
            True if effective status is active or grace
        """
        return self.effective_status(now).is_usable

    def _with_status(self, status: LicenseStatus) -> "License":
        return replace(self, status=status, updated_at=_utcnow())

    def suspend(self) -> "License":
        """
        Create a new License instance with suspended status.

        Returns:
            New License instance with suspended status
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("Cannot suspend a revoked license")
        return self._with_status(LicenseStatus.SUSPENDED)

    def deactivate(self) -> "License":
        """
        Create a new License instance with inactive status.

        Returns:
            New License instance with inactive status
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("Cannot deactivate a revoked license")
        return self._with_status(LicenseStatus.INACTIVE)

    def reactivate(self) -> "License":
        """
        Create a new License instance with active status.

        Returns:
            New License instance with active status
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("A revoked license cannot be reactivated")
        return self._with_status(LicenseStatus.ACTIVE)

    def revoke(self) -> "License":
        """
        Create a new License instance with revoked status.

        Revocation is terminal.

        Returns:
            New License instance with revoked status
        """
        return self._with_status(LicenseStatus.REVOKED)

    def renew(self, new_expiration: Optional[datetime], grace_days: int = 0) -> "License":
        """
        Create a new License instance with a new expiration.

        Args:
            new_expiration: New expiration datetime (None for perpetual)
            grace_days: Grace period after the new expiration, in days

        Returns:
            New License instance with updated dates
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("Cannot renew a revoked license")
        if new_expiration is not None and new_expiration < _utcnow():
            raise ValueError("Expiration date cannot be in the past")

        grace_until = None
        if new_expiration is not None and grace_days > 0:
            grace_until = new_expiration + timedelta(days=grace_days)

        return replace(
            self,
            expires_at=new_expiration,
            grace_until=grace_until,
            updated_at=_utcnow(),
        )
