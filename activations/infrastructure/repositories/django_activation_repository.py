"""
Django implementation of ActivationRepository port.

This adapter converts between domain entities and Django ORM models.
"""

import logging
import uuid
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from activations.domain.activation import Activation
from activations.domain.services import CapacityPolicy, ClaimOutcome, ClaimResult
from activations.infrastructure.models import Activation as ActivationModel
from activations.ports.activation_repository import ActivationRepository
from core.domain.exceptions import TransientStorageError
from core.infrastructure.database import bound_transaction, run_in_db
from licenses.infrastructure.models import License as LicenseModel

logger = logging.getLogger(__name__)


class DjangoActivationRepository(ActivationRepository):
    """
    Django ORM implementation of ActivationRepository.

    This adapter:
    1. Converts Django models to domain entities
    2. Serializes claims per license with a row lock on the license
    3. Implements repository interface with bounded storage calls
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize repository.

        Args:
            timeout: Storage timeout in seconds
        """
        self.timeout = timeout

    @staticmethod
    def to_domain(model: ActivationModel) -> Activation:
        """
        Convert Django model to domain entity.

        Args:
            model: Django Activation model

        Returns:
            Activation domain entity
        """
        return Activation(
            id=model.id,
            license_id=model.license_id,
            domain=model.domain,
            ip_hash=model.ip_hash,
            user_agent_hash=model.user_agent_hash,
            activated_at=model.activated_at,
            last_seen_at=model.last_seen_at,
            validation_count=model.validation_count,
            is_active=model.is_active,
            deactivated_at=model.deactivated_at,
            deactivated_reason=model.deactivated_reason,
        )

    def _claim(
        self,
        license_id: uuid.UUID,
        domain: str,
        policy: CapacityPolicy,
        ip_hash: str,
        user_agent_hash: Optional[str],
    ) -> ClaimResult:
        # pylint: disable=no-member
        with transaction.atomic():
            bound_transaction(self.timeout)
            # Every claim on this license queues behind the lock.
            list(LicenseModel.objects.select_for_update().filter(id=license_id).only("id"))

            active = list(ActivationModel.objects.filter(license_id=license_id, is_active=True))
            active_domains = [model.domain for model in active]

            existing = next((model for model in active if model.domain == domain), None)
            if existing is not None:
                ActivationModel.objects.filter(pk=existing.pk).update(
                    ip_hash=ip_hash,
                    last_seen_at=timezone.now(),
                    validation_count=F("validation_count") + 1,
                )
                existing.refresh_from_db()
                return ClaimResult(
                    outcome=ClaimOutcome.REFRESHED,
                    activation=self.to_domain(existing),
                    used_activations=policy.used(active_domains),
                )

            if not policy.admits(domain, active_domains):
                return ClaimResult(
                    outcome=ClaimOutcome.LIMIT_REACHED,
                    activation=None,
                    used_activations=policy.used(active_domains),
                )

            activation = Activation.create(
                license_id=license_id,
                domain=domain,
                ip_hash=ip_hash,
                user_agent_hash=user_agent_hash,
            )
            model = ActivationModel.objects.create(
                id=activation.id,
                license_id=license_id,
                domain=activation.domain,
                ip_hash=activation.ip_hash,
                user_agent_hash=activation.user_agent_hash,
                activated_at=activation.activated_at,
                last_seen_at=activation.last_seen_at,
                validation_count=activation.validation_count,
                is_active=True,
            )
            return ClaimResult(
                outcome=ClaimOutcome.CREATED,
                activation=self.to_domain(model),
                used_activations=policy.used(active_domains + [domain]),
            )

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

        Args:
            license_id: License UUID
            domain: Normalized domain
            policy: Capacity policy of the license
            ip_hash: Hash of the client IP
            user_agent_hash: Optional hash of the user agent

        Returns:
            ClaimResult

        Raises:
            TransientStorageError: On timeout, connection loss or a lost insert race
        """
        try:
            return await run_in_db(
                self._claim,
                license_id,
                domain,
                policy,
                ip_hash,
                user_agent_hash,
                operation="claim",
                table="activations",
                timeout=self.timeout,
                settle=True,
            )
        except IntegrityError as e:
            logger.warning(
                "Concurrent activation claim collided",
                extra={"license_id": str(license_id), "domain": domain},
            )
            raise TransientStorageError() from e

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

        def _touch() -> Optional[Activation]:
            # pylint: disable=no-member
            active = ActivationModel.objects.filter(
                license_id=license_id, domain=domain, is_active=True
            )
            updated = active.update(
                ip_hash=ip_hash,
                last_seen_at=timezone.now(),
                validation_count=F("validation_count") + 1,
            )
            if not updated:
                return None
            model = active.first()
            return self.to_domain(model) if model else None

        return await run_in_db(
            _touch, operation="touch", table="activations", timeout=self.timeout, settle=True
        )

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

        def _deactivate() -> Optional[Activation]:
            # pylint: disable=no-member
            with transaction.atomic():
                bound_transaction(self.timeout)
                model = (
                    ActivationModel.objects.select_for_update()
                    .filter(license_id=license_id, domain=domain, is_active=True)
                    .first()
                )
                if model is None:
                    return None
                model.is_active = False
                model.deactivated_at = timezone.now()
                model.deactivated_reason = reason
                model.save(update_fields=["is_active", "deactivated_at", "deactivated_reason"])
                return self.to_domain(model)

        return await run_in_db(
            _deactivate,
            operation="deactivate",
            table="activations",
            timeout=self.timeout,
            settle=True,
        )

    async def find_active_by_license(self, license_id: uuid.UUID) -> List[Activation]:
        """
        Find all active activations for a license.

        Args:
            license_id: License UUID

        Returns:
            List of active Activation entities
        """
        models = await run_in_db(
            lambda: list(ActivationModel.objects.filter(license_id=license_id, is_active=True)),  # pylint: disable=no-member
            operation="find_active_by_license",
            table="activations",
            timeout=self.timeout,
        )
        return [self.to_domain(model) for model in models]

    async def find_all_by_license(self, license_id: uuid.UUID) -> List[Activation]:
        """
        Find all activations for a license (active and inactive).

        Args:
            license_id: License UUID

        Returns:
            List of Activation entities
        """
        models = await run_in_db(
            lambda: list(ActivationModel.objects.filter(license_id=license_id)),  # pylint: disable=no-member
            operation="find_all_by_license",
            table="activations",
            timeout=self.timeout,
        )
        return [self.to_domain(model) for model in models]
