"""
License domain services.

Domain services contain business logic that doesn't naturally
fit within a single entity.
"""
import logging
from typing import Optional

from licenses.domain.license import License
from licenses.domain.license_key import LicenseKeyService
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class LicenseResolver:
    """
    Resolves a plaintext license key to its license.

    The key format is checked before storage is touched. Any mismatch after
    that is reported as "not found" so callers cannot tell a wrong key from
    a tampered record.
    """

    def __init__(self, key_service: LicenseKeyService, repository: LicenseRepository):
        """
        Initialize resolver.

        Args:
            key_service: Service deriving key hashes
            repository: License repository
        """
        self.key_service = key_service
        self.repository = repository

    async def resolve(self, plaintext_key: str) -> Optional[License]:
        """
        Find the license for a plaintext key.

        Args:
            plaintext_key: Key presented by the client

        Returns:
            License entity or None if the key does not resolve

        Raises:
            InvalidLicenseKeyError: If the key is malformed
        """
        hashes = self.key_service.hash_key(plaintext_key)
        license = await self.repository.find_by_key_hash(hashes.primary_hash)
        if license is None:
            logger.info("License key not found", extra={"key_hash_prefix": hashes.prefix})
            return None

        if not self.key_service.verify_hashes(hashes, license.verification_hash):
            logger.error(
                "License verification hash mismatch",
                extra={"key_hash_prefix": hashes.prefix, "license_id": str(license.id)},
            )
            return None

        return license
