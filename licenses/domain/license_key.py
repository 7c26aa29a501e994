"""
License key service.

Generates license keys, validates their format and derives the hashes
that are stored instead of the plaintext key.
"""

import hashlib
import hmac
import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

from core.domain.exceptions import InvalidLicenseKeyError, LicenseKeyGenerationError

if TYPE_CHECKING:
    from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

LICENSE_KEY_PATTERN = re.compile(r"^[0-9A-F]{8}(?:-[0-9A-F]{8}){3}$")
KEY_GROUPS = 4
GROUP_LENGTH = 8


def normalize_license_key(raw_key: str) -> str:
    """
    Canonicalize and validate a license key.

    Args:
        raw_key: Key as typed by a user or sent by a client

    Returns:
        Uppercase key in XXXXXXXX-XXXXXXXX-XXXXXXXX-XXXXXXXX form

    Raises:
        InvalidLicenseKeyError: If the key is not four 8-hex-digit groups
    """
    key = (raw_key or "").strip().upper()
    if not LICENSE_KEY_PATTERN.match(key):
        raise InvalidLicenseKeyError()
    return key


def is_valid_license_key(raw_key: str) -> bool:
    """
    Check a license key's format without touching storage.

    Args:
        raw_key: Key to check

    Returns:
        True if the key is four dash-separated 8-hex-digit groups
    """
    try:
        normalize_license_key(raw_key)
    except InvalidLicenseKeyError:
        return False
    return True


@dataclass(frozen=True)
class KeyHashes:
    """Stored representation of a license key."""

    primary_hash: str
    verification_hash: str

    @property
    def prefix(self) -> str:
        """Short hash prefix that is safe to log."""
        return self.primary_hash[:8]


class LicenseKeyService:
    """
    Domain service for license key generation and hashing.

    ``primary_hash = HMAC-SHA256(key, key_salt)`` and
    ``verification_hash = HMAC-SHA256(primary_hash, server_secret)``.
    """

    def __init__(self, key_salt: str, server_secret: str):
        """
        Initialize key service.

        Args:
            key_salt: Salt used for the primary hash
            server_secret: Secret used for the verification hash
        """
        self._key_salt = key_salt.encode()
        self._server_secret = server_secret.encode()

    @staticmethod
    def generate(product_id: str, owner_id: str) -> str:
        """
        Generate a new plaintext license key.

        Random bytes and request context are mixed through SHA-256 and the
        first 16 bytes of the digest are formatted as four hex groups.

        Args:
            product_id: Product reference mixed into the entropy
            owner_id: Owner reference mixed into the entropy

        Returns:
            Plaintext key
        """
        entropy = b"|".join(
            [
                secrets.token_bytes(16),
                str(time.time_ns()).encode(),
                str(os.getpid()).encode(),
                str(product_id).encode(),
                str(owner_id).encode(),
                secrets.token_bytes(32),
            ]
        )
        raw = hashlib.sha256(entropy).hexdigest()[: KEY_GROUPS * GROUP_LENGTH].upper()
        return "-".join(
            raw[i : i + GROUP_LENGTH] for i in range(0, len(raw), GROUP_LENGTH)
        )

    def hash_key(self, plaintext: str) -> KeyHashes:
        """
        Derive the stored hashes of a license key.

        Args:
            plaintext: License key (validated and canonicalized first)

        Returns:
            KeyHashes for the key

        Raises:
            InvalidLicenseKeyError: If the key is malformed
        """
        key = normalize_license_key(plaintext)
        primary = hmac.new(self._key_salt, key.encode(), hashlib.sha256).hexdigest()
        verification = hmac.new(
            self._server_secret, primary.encode(), hashlib.sha256
        ).hexdigest()
        return KeyHashes(primary_hash=primary, verification_hash=verification)

    def verify(self, plaintext: str, stored_primary_hash: str) -> bool:
        """
        Check a plaintext key against a stored primary hash in constant time.

        Args:
            plaintext: License key
            stored_primary_hash: Stored primary hash

        Returns:
            True if the key produces the stored hash
        """
        try:
            hashes = self.hash_key(plaintext)
        except InvalidLicenseKeyError:
            return False
        return hmac.compare_digest(hashes.primary_hash, stored_primary_hash)

    def verify_hashes(self, hashes: KeyHashes, stored_verification_hash: str) -> bool:
        """
        Check a stored verification hash in constant time.

        Args:
            hashes: Hashes derived from the presented key
            stored_verification_hash: Verification hash stored with the license

        Returns:
            True if the verification hash matches
        """
        return hmac.compare_digest(hashes.verification_hash, stored_verification_hash)

    @staticmethod
    def mask(primary_hash: str) -> str:
        """
        Build a display label for a key from its primary hash.

        Args:
            primary_hash: Stored primary hash

        Returns:
            Label in ****-****-****-XXXX form
        """
        return f"****-****-****-{primary_hash[-4:].upper()}"

    async def generate_unique(
        self,
        product_id: str,
        owner_id: str,
        repository: "LicenseRepository",
        max_attempts: int = 10,
    ) -> Tuple[str, KeyHashes]:
        """
        Generate a key whose primary hash is not yet stored.

        Args:
            product_id: Product reference
            owner_id: Owner reference
            repository: License repository used for the uniqueness check
            max_attempts: Maximum number of generation attempts

        Returns:
            Tuple of (plaintext key, hashes)

        Raises:
            LicenseKeyGenerationError: If every attempt collided
        """
        for attempt in range(1, max_attempts + 1):
            plaintext = self.generate(product_id, owner_id)
            hashes = self.hash_key(plaintext)
            if not await repository.key_hash_exists(hashes.primary_hash):
                return plaintext, hashes
            logger.warning(
                "License key collision, retrying",
                extra={"attempt": attempt, "key_hash_prefix": hashes.prefix},
            )

        logger.error(
            "License key generation exhausted", extra={"attempts": max_attempts}
        )
        raise LicenseKeyGenerationError()
