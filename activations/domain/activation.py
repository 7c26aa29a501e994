"""
Activation domain entity.

This is the core domain entity representing the binding of a license to
one normalized domain. It is independent of infrastructure.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Activation:
    """
    Activation domain entity.

    Rows are soft-deactivated and never deleted, so a domain can have
    several historical rows but at most one active one.
    """

    id: uuid.UUID
    license_id: uuid.UUID
    domain: str
    ip_hash: str
    user_agent_hash: Optional[str]
    activated_at: datetime
    last_seen_at: datetime
    validation_count: int
    is_active: bool
    deactivated_at: Optional[datetime] = None
    deactivated_reason: Optional[str] = None

    def __post_init__(self):
        """Validate activation entity."""
        if not self.license_id:
            raise ValueError("License ID is required")
        if not self.domain:
            raise ValueError("Domain is required")
        if self.validation_count < 0:
            raise ValueError("Validation count cannot be negative")

    @classmethod
    def create(
        cls,
        license_id: uuid.UUID,
        domain: str,
        ip_hash: str,
        user_agent_hash: Optional[str] = None,
        activation_id: Optional[uuid.UUID] = None,
    ) -> "Activation":
        """
        Create a new active Activation entity.

        Args:
            license_id: License UUID
            domain: Normalized domain
            ip_hash: Hash of the client IP
            user_agent_hash: Optional hash of the client user agent
            activation_id: Optional UUID (generated if not provided)

        Returns:
            Activation entity instance
        """
        now = _utcnow()
        return cls(
            id=activation_id or uuid.uuid4(),
            license_id=license_id,
            domain=domain,
            ip_hash=ip_hash,
            user_agent_hash=user_agent_hash,
            activated_at=now,
            last_seen_at=now,
            validation_count=0,
            is_active=True,
        )

    def touch(self, ip_hash: Optional[str] = None) -> "Activation":
        """
        Create a new Activation instance refreshed by a heartbeat.

        Args:
            ip_hash: Hash of the client IP seen on this heartbeat

        Returns:
            New Activation instance with advanced last_seen_at
        """
        return replace(
            self,
            ip_hash=ip_hash or self.ip_hash,
            last_seen_at=_utcnow(),
            validation_count=self.validation_count + 1,
        )

    def deactivate(self, reason: Optional[str] = None) -> "Activation":
        """
        Create a new Activation instance with deactivated status.

        Args:
            reason: Why the activation was released

        Returns:
            New Activation instance with deactivated status
        """
        if not self.is_active:
            return self

        return replace(
            self,
            is_active=False,
            deactivated_at=_utcnow(),
            deactivated_reason=reason,
        )
