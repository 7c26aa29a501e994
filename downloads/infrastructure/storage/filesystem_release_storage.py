"""
Filesystem implementation of ReleaseStorage port.

Releases are laid out as ``<root>/<product_id>/<release_id>``. The latest
release of a product is the file with the highest parsed version.
"""
import logging
from pathlib import Path
from typing import BinaryIO, Optional

from asgiref.sync import sync_to_async

from downloads.domain.release import Release, is_valid_release_id, parse_release_id, version_key
from downloads.ports.release_storage import ReleaseStorage

logger = logging.getLogger(__name__)


class FilesystemReleaseStorage(ReleaseStorage):
    """Release storage backed by a local directory."""

    def __init__(self, root: Optional[Path]):
        """
        Initialize storage.

        Args:
            root: Releases directory; None means no releases are available
        """
        self.root = Path(root).resolve() if root else None

    def _find(self, product_id: str, release_id: str) -> Optional[Release]:
        if self.root is None:
            return None
        if not is_valid_release_id(release_id) or not is_valid_release_id(product_id):
            logger.warning(
                "Rejected release lookup",
                extra={"product_id": product_id, "release_id": release_id},
            )
            return None

        path = (self.root / product_id / release_id).resolve()
        if self.root not in path.parents or not path.is_file():
            return None
        return Release(
            product_id=product_id,
            release_id=release_id,
            path=path,
            size=path.stat().st_size,
        )

    async def find(self, product_id: str, release_id: str) -> Optional[Release]:
        """
        Find a release of a product.

        Args:
            product_id: Product reference of the license
            release_id: Release file name

        Returns:
            Release or None if missing or the identifiers are unsafe
        """
        return await sync_to_async(self._find)(product_id, release_id)

    def _latest(self, product_id: str) -> Optional[Release]:
        if self.root is None or not is_valid_release_id(product_id):
            return None
        product_dir = (self.root / product_id).resolve()
        if self.root not in product_dir.parents or not product_dir.is_dir():
            return None

        candidates = []
        for path in product_dir.iterdir():
            if not path.is_file() or not is_valid_release_id(path.name):
                continue
            version = parse_release_id(path.name)[1]
            if version is not None:
                candidates.append((version_key(version), path))
        if not candidates:
            return None

        _, path = max(candidates, key=lambda candidate: candidate[0])
        return Release(
            product_id=product_id,
            release_id=path.name,
            path=path,
            size=path.stat().st_size,
        )

    async def latest(self, product_id: str) -> Optional[Release]:
        """
        Find the highest-versioned release of a product.

        Args:
            product_id: Product reference of the license

        Returns:
            Release or None if the product directory holds no versioned file
        """
        return await sync_to_async(self._latest)(product_id)

    def open(self, release: Release) -> BinaryIO:
        """
        Open a release file for streaming.

        Args:
            release: Release found by ``find``

        Returns:
            Binary file object
        """
        return open(release.path, "rb")
