"""
License repository port (interface).

This defines the contract for license persistence operations.
Implementations are in the infrastructure layer.
"""
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from licenses.domain.license import License


class LicenseRepository(ABC):
    """
    Abstract repository for License entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def save(self, license: License) -> License:
        """
        Save a license entity.

        Args:
            license: License entity to save

        Returns:
            Saved license entity
        """
        pass

    @abstractmethod
    async def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        """
        Find a license by ID.

        Args:
            license_id: License UUID

        Returns:
            License entity or None if not found
        """
        pass

    @abstractmethod
    async def find_by_key_hash(self, key_hash: str) -> Optional[License]:
        """
        Find a license by the primary hash of its key.

        Args:
            key_hash: Primary key hash

        Returns:
            License entity or None if not found
        """
        pass

    @abstractmethod
    async def key_hash_exists(self, key_hash: str) -> bool:
        """
        Check if a primary key hash is already stored.

        Args:
            key_hash: Primary key hash

        Returns:
            True if a license uses this hash
        """
        pass

    @abstractmethod
    async def find_by_owner(self, owner_id: str) -> List[License]:
        """
        Find all licenses of an owner.

        Args:
            owner_id: Owner reference

        Returns:
            List of License entities
        """
        pass
