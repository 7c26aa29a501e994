"""
Activation repository port (interface).

This defines the contract for activation persistence operations.
Implementations are in the infrastructure layer.
"""
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from activations.domain.activation import Activation
from activations.domain.services import CapacityPolicy, ClaimResult


class ActivationRepository(ABC):
    """
    Abstract repository for Activation entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def claim(
        self,
        license_id: uuid.UUID,
        domain: str,
        policy: CapacityPolicy,
        ip_hash: str,
        user_agent_hash: Optional[str] = None,
    ) -> ClaimResult:
        """
        Atomically refresh or create the active activation of a domain.

        Implementations must serialize claims per license: an existing
        active row is refreshed; otherwise a row is inserted only if
        ``policy.admits`` the domain against the active domains seen
        inside the same atomic section.

        Args:
            license_id: License UUID
            domain: Normalized domain
            policy: Capacity policy of the license
            ip_hash: Hash of the client IP
            user_agent_hash: Optional hash of the user agent

        Returns:
            ClaimResult

        Raises:
            TransientStorageError: If the atomic section could not complete
        """
        pass

    @abstractmethod
    async def touch(
        self, license_id: uuid.UUID, domain: str, ip_hash: str
    ) -> Optional[Activation]:
        """
        Refresh last_seen_at and increment validation_count of an active row.

        Args:
            license_id: License UUID
            domain: Normalized domain
            ip_hash: Hash of the client IP

        Returns:
            Refreshed Activation, or None if the domain is not active
        """
        pass

    @abstractmethod
    async def deactivate(
        self, license_id: uuid.UUID, domain: str, reason: Optional[str] = None
    ) -> Optional[Activation]:
        """
        Soft-deactivate the active row of a domain.

        Args:
            license_id: License UUID
            domain: Normalized domain
            reason: Deactivation reason

        Returns:
            Deactivated Activation, or None if the domain was not active
        """
        pass

    @abstractmethod
    async def find_active_by_license(
        self, license_id: uuid.UUID
    ) -> List[Activation]:
        """
        Find all active activations for a license.

        Args:
            license_id: License UUID

        Returns:
            List of active Activation entities
        """
        pass

    @abstractmethod
    async def find_all_by_license(
        self, license_id: uuid.UUID
    ) -> List[Activation]:
        """
        Find all activations for a license (active and inactive).

        Args:
            license_id: License UUID

        Returns:
            List of Activation entities
        """
        pass
