"""
Activation domain services.

The ledger binds licenses to domains. Capacity rules live in
CapacityPolicy so repositories can apply them inside their atomic
section without duplicating business logic.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional

from activations.domain.activation import Activation
from activations.domain.domain_name import DomainAllowList
from core.domain.exceptions import TransientStorageError
from core.domain.value_objects import DenialReason, EffectiveStatus
from core.metrics import activation_storage_retries_total
from licenses.domain.license import License

if TYPE_CHECKING:
    from activations.ports.activation_repository import ActivationRepository

logger = logging.getLogger(__name__)


class ClaimOutcome(Enum):
    """Result of an atomic activation claim."""

    CREATED = "created"
    REFRESHED = "refreshed"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a claim plus the capacity used once it was applied."""

    outcome: ClaimOutcome
    activation: Optional[Activation]
    used_activations: int


@dataclass(frozen=True)
class CapacityPolicy:
    """
    Activation capacity of one license.

    Only active, non-exempt domains count against ``max_activations``.
    ``None`` means unlimited.
    """

    max_activations: Optional[int]
    allow_list: DomainAllowList

    def used(self, active_domains: Iterable[str]) -> int:
        """
        Count capacity consumed by active domains.

        Args:
            active_domains: Domains with an active activation

        Returns:
            Number of non-exempt domains
        """
        return sum(1 for domain in active_domains if not self.allow_list.is_exempt(domain))

    def remaining(self, used: int) -> Optional[int]:
        """
        Remaining capacity for a usage count.

        Args:
            used: Capacity consumed

        Returns:
            Remaining activations floored at zero, or None when unlimited
        """
        if self.max_activations is None:
            return None
        return max(0, self.max_activations - used)

    def admits(self, domain: str, active_domains: Iterable[str]) -> bool:
        """
        Decide whether a new domain may be activated.

        Args:
            domain: Normalized domain without an active activation
            active_domains: Domains with an active activation

        Returns:
            True if the domain is exempt, capacity is unlimited, or a slot is free
        """
        if self.max_activations is None or self.allow_list.is_exempt(domain):
            return True
        return self.used(active_domains) < self.max_activations


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a ledger operation, successful or not."""

    success: bool
    status: EffectiveStatus
    reason: Optional[DenialReason] = None
    remaining_activations: Optional[int] = None
    activation: Optional[Activation] = None
    created: bool = False


class ActivationLedger:
    """
    Domain service for the per-license set of activated domains.

    Expected outcomes (expired license, exhausted capacity, unknown domain)
    are returned as LedgerResult. Only storage failures raise.
    """

    def __init__(
        self,
        repository: "ActivationRepository",
        allow_list: DomainAllowList,
        ip_salt: str,
        exempt_bypass_expiry: bool = False,
        storage_retries: int = 1,
    ):
        """
        Initialize ledger.

        Args:
            repository: Activation repository providing the atomic claim
            allow_list: Exempt domain allow-list
            ip_salt: Salt for hashing client IPs
            exempt_bypass_expiry: Keep exempt domains usable on expired licenses
            storage_retries: Extra attempts after a transient storage error
        """
        self.repository = repository
        self.allow_list = allow_list
        self._ip_salt = ip_salt.encode()
        self.exempt_bypass_expiry = exempt_bypass_expiry
        self.storage_retries = storage_retries

    def hash_ip(self, ip: Optional[str]) -> str:
        """
        Hash a client IP with the IP salt.

        Args:
            ip: Client IP address

        Returns:
            Hex digest
        """
        return hmac.new(self._ip_salt, (ip or "").encode(), hashlib.sha256).hexdigest()

    @staticmethod
    def hash_user_agent(user_agent: Optional[str]) -> Optional[str]:
        """
        Hash a user agent string.

        Args:
            user_agent: Client user agent

        Returns:
            Hex digest, or None when no user agent was sent
        """
        if not user_agent:
            return None
        return hashlib.sha256(user_agent.encode()).hexdigest()

    def policy_for(self, license: License) -> CapacityPolicy:
        """
        Build the capacity policy of a license.

        Args:
            license: License entity

        Returns:
            CapacityPolicy
        """
        return CapacityPolicy(license.max_activations, self.allow_list)

    def _gate(
        self, license: License, domain: str, now: Optional[datetime]
    ) -> tuple[EffectiveStatus, bool]:
        status = license.effective_status(now)
        if status.is_usable:
            return status, True
        if (
            self.exempt_bypass_expiry
            and status == EffectiveStatus.EXPIRED
            and self.allow_list.is_exempt(domain)
        ):
            return status, True
        return status, False

    async def activate(
        self,
        license: License,
        domain: str,
        ip: Optional[str],
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LedgerResult:
        """
        Bind a domain to a license.

        Re-activating an active domain refreshes it without using capacity.

        Args:
            license: License entity
            domain: Normalized domain
            ip: Client IP
            user_agent: Client user agent
            now: Point in time for the status check

        Returns:
            LedgerResult

        Raises:
            TransientStorageError: If storage failed on every attempt
        """
        status, allowed = self._gate(license, domain, now)
        if not allowed:
            return LedgerResult(
                success=False, status=status, reason=DenialReason.for_status(status)
            )

        policy = self.policy_for(license)
        claim = await self._claim_with_retry(
            license, domain, policy, self.hash_ip(ip), self.hash_user_agent(user_agent)
        )

        if claim.outcome == ClaimOutcome.LIMIT_REACHED:
            logger.info(
                "Activation limit reached",
                extra={
                    "license_id": str(license.id),
                    "domain": domain,
                    "max_activations": license.max_activations,
                },
            )
            return LedgerResult(
                success=False,
                status=status,
                reason=DenialReason.ACTIVATION_LIMIT,
                remaining_activations=0,
            )

        logger.info(
            "Domain activated" if claim.outcome == ClaimOutcome.CREATED else "Domain re-activated",
            extra={
                "license_id": str(license.id),
                "domain": domain,
                "used_activations": claim.used_activations,
            },
        )
        return LedgerResult(
            success=True,
            status=status,
            remaining_activations=policy.remaining(claim.used_activations),
            activation=claim.activation,
            created=claim.outcome == ClaimOutcome.CREATED,
        )

    async def _claim_with_retry(
        self,
        license: License,
        domain: str,
        policy: CapacityPolicy,
        ip_hash: str,
        user_agent_hash: Optional[str],
    ) -> ClaimResult:
        attempt = 0
        while True:
            try:
                return await self.repository.claim(
                    license_id=license.id,
                    domain=domain,
                    policy=policy,
                    ip_hash=ip_hash,
                    user_agent_hash=user_agent_hash,
                )
            except TransientStorageError:
                if attempt >= self.storage_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Activation claim failed, retrying",
                    extra={"license_id": str(license.id), "attempt": attempt},
                )
                activation_storage_retries_total.inc()

    async def validate(
        self,
        license: License,
        domain: str,
        ip: Optional[str],
        now: Optional[datetime] = None,
    ) -> LedgerResult:
        """
        Record a heartbeat from an activated domain.

        Args:
            license: License entity
            domain: Normalized domain
            ip: Client IP
            now: Point in time for the status check

        Returns:
            LedgerResult carrying the effective status
        """
        status, allowed = self._gate(license, domain, now)
        if not allowed:
            return LedgerResult(
                success=False, status=status, reason=DenialReason.for_status(status)
            )

        activation = await self.repository.touch(license.id, domain, self.hash_ip(ip))
        if activation is None:
            return LedgerResult(
                success=False, status=status, reason=DenialReason.DOMAIN_NOT_ACTIVATED
            )

        return LedgerResult(success=True, status=status, activation=activation)

    async def deactivate(
        self, license: License, domain: str, reason: Optional[str] = None
    ) -> bool:
        """
        Release a domain's activation.

        Args:
            license: License entity
            domain: Normalized domain
            reason: Why the activation is released

        Returns:
            True if an active activation was deactivated
        """
        activation = await self.repository.deactivate(license.id, domain, reason)
        if activation is None:
            return False
        logger.info(
            "Domain deactivated",
            extra={"license_id": str(license.id), "domain": domain, "reason": reason},
        )
        return True

    async def remaining_activations(self, license: License) -> Optional[int]:
        """
        Remaining activation capacity of a license.

        Args:
            license: License entity

        Returns:
            Remaining activations floored at zero, or None when unlimited
        """
        policy = self.policy_for(license)
        if policy.max_activations is None:
            return None
        active = await self.repository.find_active_by_license(license.id)
        return policy.remaining(policy.used(a.domain for a in active))

    async def list_activations(
        self, license: License, active_only: bool = True
    ) -> List[Activation]:
        """
        List a license's activations.

        Args:
            license: License entity
            active_only: Exclude deactivated rows

        Returns:
            List of Activation entities
        """
        if active_only:
            return await self.repository.find_active_by_license(license.id)
        return await self.repository.find_all_by_license(license.id)
