"""
Release storage port (interface).

Release files are owned by an external collaborator; the engine only
looks them up and streams them.
"""
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

from downloads.domain.release import Release


class ReleaseStorage(ABC):
    """Abstract lookup of release files by product."""

    @abstractmethod
    async def find(self, product_id: str, release_id: str) -> Optional[Release]:
        """
        Find a release of a product.

        Args:
            product_id: Product reference of the license
            release_id: Release identifier

        Returns:
            Release or None if the product has no such release
        """
        pass

    @abstractmethod
    async def latest(self, product_id: str) -> Optional[Release]:
        """
        Find the highest-versioned release of a product.

        Args:
            product_id: Product reference of the license

        Returns:
            Release with the greatest version, or None if the product has
            no versioned releases
        """
        pass

    @abstractmethod
    def open(self, release: Release) -> BinaryIO:
        """
        Open a release file for streaming.

        Args:
            release: Release found by ``find``

        Returns:
            Binary file object; the caller closes it
        """
        pass
