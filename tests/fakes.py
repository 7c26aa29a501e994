"""
In-memory adapters used by unit tests.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional

from activations.domain.activation import Activation
from activations.domain.services import CapacityPolicy, ClaimOutcome, ClaimResult
from activations.ports.activation_repository import ActivationRepository
from core.domain.events import DomainEvent, EventHandler
from core.domain.exceptions import CacheUnavailableError, TransientStorageError
from core.infrastructure.cache import CachePort
from downloads.domain.release import Release, parse_release_id, version_key
from downloads.ports.release_storage import ReleaseStorage
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

TEST_SERVER_SECRET = "unit-server-secret-0123456789abcdef0123456789abcdef"
TEST_KEY_SALT = "unit-key-salt-0123456789abcdef0123456789abcdef"
TEST_IP_SALT = "unit-ip-salt-0123456789abcdef0123456789abcdef"


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.now, tz=timezone.utc)


class InMemoryLicenseRepository(LicenseRepository):
    """Dictionary-backed LicenseRepository."""

    def __init__(self):
        self.licenses: Dict[uuid.UUID, License] = {}

    async def save(self, license: License) -> License:
        self.licenses[license.id] = license
        return license

    async def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        return self.licenses.get(license_id)

    async def find_by_key_hash(self, key_hash: str) -> Optional[License]:
        return next((lic for lic in self.licenses.values() if lic.key_hash == key_hash), None)

    async def key_hash_exists(self, key_hash: str) -> bool:
        return await self.find_by_key_hash(key_hash) is not None

    async def find_by_owner(self, owner_id: str) -> List[License]:
        return [lic for lic in self.licenses.values() if lic.owner_id == owner_id]


class InMemoryActivationRepository(ActivationRepository):
    """
    List-backed ActivationRepository.

    Claims are serialized per repository by an asyncio lock; the lock is
    held across an await so concurrent claims really interleave.
    """

    def __init__(self):
        self.activations: List[Activation] = []
        self._lock = asyncio.Lock()
        self.failures_before_success = 0

    def _active_index(self, license_id: uuid.UUID, domain: str) -> Optional[int]:
        for index, activation in enumerate(self.activations):
            if (
                activation.license_id == license_id
                and activation.domain == domain
                and activation.is_active
            ):
                return index
        return None

    async def claim(
        self,
        license_id: uuid.UUID,
        domain: str,
        policy: CapacityPolicy,
        ip_hash: str,
        user_agent_hash: Optional[str] = None,
    ) -> ClaimResult:
        if self.failures_before_success > 0:
            self.failures_before_success -= 1
            raise TransientStorageError()

        async with self._lock:
            active_domains = [
                a.domain for a in self.activations if a.license_id == license_id and a.is_active
            ]
            await asyncio.sleep(0)

            index = self._active_index(license_id, domain)
            if index is not None:
                refreshed = self.activations[index].touch(ip_hash)
                self.activations[index] = refreshed
                return ClaimResult(ClaimOutcome.REFRESHED, refreshed, policy.used(active_domains))

            if not policy.admits(domain, active_domains):
                return ClaimResult(ClaimOutcome.LIMIT_REACHED, None, policy.used(active_domains))

            activation = Activation.create(
                license_id=license_id,
                domain=domain,
                ip_hash=ip_hash,
                user_agent_hash=user_agent_hash,
            )
            self.activations.append(activation)
            return ClaimResult(
                ClaimOutcome.CREATED, activation, policy.used(active_domains + [domain])
            )

    async def touch(
        self, license_id: uuid.UUID, domain: str, ip_hash: str
    ) -> Optional[Activation]:
        index = self._active_index(license_id, domain)
        if index is None:
            return None
        self.activations[index] = self.activations[index].touch(ip_hash)
        return self.activations[index]

    async def deactivate(
        self, license_id: uuid.UUID, domain: str, reason: Optional[str] = None
    ) -> Optional[Activation]:
        index = self._active_index(license_id, domain)
        if index is None:
            return None
        self.activations[index] = self.activations[index].deactivate(reason)
        return self.activations[index]

    async def find_active_by_license(self, license_id: uuid.UUID) -> List[Activation]:
        return [a for a in self.activations if a.license_id == license_id and a.is_active]

    async def find_all_by_license(self, license_id: uuid.UUID) -> List[Activation]:
        return [a for a in self.activations if a.license_id == license_id]


class InMemoryCache(CachePort):
    """Dictionary-backed CachePort that can simulate an outage."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.available = True

    def _check(self):
        if not self.available:
            raise CacheUnavailableError()

    async def get(self, key: str) -> Optional[Any]:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        self._check()
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)

    async def incr(self, key: str, delta: int = 1, timeout: Optional[int] = None) -> int:
        self._check()
        self.data[key] = self.data.get(key, 0) + delta
        return self.data[key]

    async def expire(self, key: str, timeout: int) -> bool:
        self._check()
        return key in self.data


class InMemoryReleaseStorage(ReleaseStorage):
    """Release storage holding file contents in memory."""

    def __init__(self, releases: Optional[Dict[tuple, bytes]] = None):
        self.releases = dict(releases or {})

    async def find(self, product_id: str, release_id: str) -> Optional[Release]:
        content = self.releases.get((product_id, release_id))
        if content is None:
            return None
        return Release(
            product_id=product_id,
            release_id=release_id,
            path=Path(product_id) / release_id,
            size=len(content),
        )

    async def latest(self, product_id: str) -> Optional[Release]:
        versioned = [
            release_id
            for (product, release_id) in self.releases
            if product == product_id and parse_release_id(release_id)[1] is not None
        ]
        if not versioned:
            return None
        newest = max(versioned, key=lambda release_id: version_key(parse_release_id(release_id)[1]))
        return await self.find(product_id, newest)

    def open(self, release: Release):
        return BytesIO(self.releases[(release.product_id, release.release_id)])


class RecordingEventHandler(EventHandler):
    """Collects every event it receives."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    async def handle(self, event: DomainEvent) -> None:
        self.events.append(event)
