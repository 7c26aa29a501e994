"""
Signed URL service.

A download capability is the tuple (license id, release id, expiry) plus an
HMAC over it. Nothing is persisted: verification recomputes the signature.
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlencode

DEFAULT_TTL = 300


@dataclass(frozen=True)
class SignedUrl:
    """Issued download link."""

    url: str
    license_id: str
    release_id: str
    expires: int
    signature: str


class SignedUrlService:
    """
    Issues and verifies download capability tokens.

    Tokens are stateless, so a link may be replayed until it expires.
    Rotating the secret invalidates every outstanding link.
    """

    def __init__(
        self,
        secret: str,
        base_url: str,
        default_ttl: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize service.

        Args:
            secret: Server signing secret
            base_url: Download endpoint URL the query string is appended to
            default_ttl: Link lifetime in seconds
            clock: Source of the current UNIX time
        """
        if default_ttl <= 0:
            raise ValueError(f"Download link TTL must be positive, got {default_ttl}")
        self._secret = secret.encode()
        self.base_url = base_url
        self.default_ttl = default_ttl
        self.clock = clock

    def sign(self, license_id: str, release_id: str, expires: int) -> str:
        """
        Compute the signature of a token.

        Args:
            license_id: License ID
            release_id: Release ID
            expires: Expiry as UNIX time

        Returns:
            Hex HMAC-SHA256 digest
        """
        data = f"{license_id}|{release_id}|{int(expires)}".encode()
        return hmac.new(self._secret, data, hashlib.sha256).hexdigest()

    def issue(self, license_id, release_id, ttl: Optional[int] = None) -> SignedUrl:
        """
        Issue a signed download link.

        Args:
            license_id: License ID
            release_id: Release ID
            ttl: Lifetime in seconds (defaults to default_ttl)

        Returns:
            SignedUrl

        Raises:
            ValueError: If ttl is not a positive number of seconds
        """
        if ttl is None:
            ttl = self.default_ttl
        if ttl <= 0:
            raise ValueError(f"Download link TTL must be positive, got {ttl}")
        license_id, release_id = str(license_id), str(release_id)
        expires = int(self.clock()) + int(ttl)
        signature = self.sign(license_id, release_id, expires)
        query = urlencode(
            {
                "license_id": license_id,
                "release_id": release_id,
                "expires": expires,
                "sig": signature,
            }
        )
        separator = "&" if "?" in self.base_url else "?"
        return SignedUrl(
            url=f"{self.base_url}{separator}{query}",
            license_id=license_id,
            release_id=release_id,
            expires=expires,
            signature=signature,
        )

    def verify(self, license_id, release_id, expires, signature: str) -> bool:
        """
        Verify a download token.

        Args:
            license_id: License ID from the link
            release_id: Release ID from the link
            expires: Expiry from the link
            signature: Signature from the link

        Returns:
            False if the link expired or any field was altered
        """
        try:
            expires = int(expires)
        except (TypeError, ValueError):
            return False
        if expires < self.clock():
            return False
        expected = self.sign(str(license_id), str(release_id), expires)
        return hmac.compare_digest(expected, str(signature or ""))
