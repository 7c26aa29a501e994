"""
CreateLicenseHandler.

Handler for creating licenses on order fulfillment.
"""
import logging

from core.infrastructure.events import event_bus
from core.metrics import licenses_created_total
from licenses.application.commands.create_license import CreateLicenseCommand
from licenses.application.dto.license_dto import CreateLicenseResponseDTO
from licenses.domain.events import LicenseCreated
from licenses.domain.license import License
from licenses.domain.license_key import LicenseKeyService
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class CreateLicenseHandler:
    """Handler for CreateLicenseCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        key_service: LicenseKeyService,
        key_generation_attempts: int = 10,
        default_grace_days: int = 7,
    ):
        """Initialize handler with repository and key service."""
        self.license_repository = license_repository
        self.key_service = key_service
        self.key_generation_attempts = key_generation_attempts
        self.default_grace_days = default_grace_days

    async def handle(self, command: CreateLicenseCommand) -> CreateLicenseResponseDTO:
        """
        Handle create license command.

        Args:
            command: CreateLicenseCommand

        Returns:
            CreateLicenseResponseDTO carrying the plaintext key once

        Raises:
            LicenseKeyGenerationError: If no unique key could be generated
            ValueError: If the license attributes are invalid
        """
        plaintext_key, hashes = await self.key_service.generate_unique(
            product_id=command.product_id,
            owner_id=command.owner_id,
            repository=self.license_repository,
            max_attempts=self.key_generation_attempts,
        )

        grace_days = (
            self.default_grace_days if command.grace_days is None else command.grace_days
        )
        license = License.create(
            owner_id=command.owner_id,
            product_id=command.product_id,
            key_hash=hashes.primary_hash,
            verification_hash=hashes.verification_hash,
            order_ref=command.order_ref,
            max_activations=command.max_activations,
            expires_at=command.expires_at,
            grace_days=grace_days,
        )
        license = await self.license_repository.save(license)

        licenses_created_total.labels(product_id=license.product_id).inc()
        logger.info(
            "License created",
            extra={
                "license_id": str(license.id),
                "product_id": license.product_id,
                "key_hash_prefix": hashes.prefix,
            },
        )

        await event_bus.publish(
            LicenseCreated(
                aggregate_id=str(license.id),
                owner_id=license.owner_id,
                product_id=license.product_id,
                key_hash_prefix=hashes.prefix,
                max_activations=license.max_activations,
            )
        )

        return CreateLicenseResponseDTO(
            license_id=license.id,
            license_key=plaintext_key,
            key_mask=self.key_service.mask(license.key_hash),
            status=license.status.value,
            expires_at=license.expires_at,
            grace_until=license.grace_until,
            max_activations=license.max_activations,
        )
