"""
Django implementation of LicenseRepository port.

This adapter converts between domain entities and Django ORM models.
"""
import uuid
from typing import List, Optional

from core.domain.value_objects import LicenseStatus
from core.infrastructure.database import run_in_db
from licenses.domain.license import License
from licenses.infrastructure.models import License as LicenseModel
from licenses.ports.license_repository import LicenseRepository


class DjangoLicenseRepository(LicenseRepository):
    """
    Django ORM implementation of LicenseRepository.

    This adapter:
    1. Converts Django models to domain entities
    2. Converts domain entities to Django models
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
    def to_domain(model: LicenseModel) -> License:
        """
        Convert Django model to domain entity.

        Args:
            model: Django License model

        Returns:
            License domain entity
        """
        return License(
            id=model.id,
            owner_id=model.owner_id,
            product_id=model.product_id,
            order_ref=model.order_ref,
            key_hash=model.key_hash,
            verification_hash=model.verification_hash,
            status=LicenseStatus(model.status),
            expires_at=model.expires_at,
            grace_until=model.grace_until,
            max_activations=model.max_activations,
            failed_attempts=model.failed_attempts,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _save(self, license: License) -> License:
        # pylint: disable=no-member
        model = LicenseModel.objects.filter(id=license.id).first()
        if model is None:
            model = LicenseModel(
                id=license.id,
                owner_id=license.owner_id,
                product_id=license.product_id,
                order_ref=license.order_ref,
                key_hash=license.key_hash,
                verification_hash=license.verification_hash,
            )
        model.status = license.status.value
        model.expires_at = license.expires_at
        model.grace_until = license.grace_until
        model.max_activations = license.max_activations
        model.save()
        return self.to_domain(model)

    async def save(self, license: License) -> License:
        """
        Save a license entity.

        Args:
            license: License entity to save

        Returns:
            Saved license entity
        """
        return await run_in_db(
            self._save,
            license,
            operation="save",
            table="licenses",
            timeout=self.timeout,
            settle=True,
        )

    async def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        """
        Find a license by ID.

        Args:
            license_id: License UUID

        Returns:
            License entity or None if not found
        """

        def _find() -> Optional[License]:
            # pylint: disable=no-member
            model = LicenseModel.objects.filter(id=license_id).first()
            return self.to_domain(model) if model else None

        return await run_in_db(
            _find, operation="find_by_id", table="licenses", timeout=self.timeout
        )

    async def find_by_key_hash(self, key_hash: str) -> Optional[License]:
        """
        Find a license by the primary hash of its key.

        Args:
            key_hash: Primary key hash

        Returns:
            License entity or None if not found
        """

        def _find() -> Optional[License]:
            # pylint: disable=no-member
            model = LicenseModel.objects.filter(key_hash=key_hash).first()
            return self.to_domain(model) if model else None

        return await run_in_db(
            _find, operation="find_by_key_hash", table="licenses", timeout=self.timeout
        )

    async def key_hash_exists(self, key_hash: str) -> bool:
        """
        Check if a primary key hash is already stored.

        Args:
            key_hash: Primary key hash

        Returns:
            True if a license uses this hash
        """
        return await run_in_db(
            lambda: LicenseModel.objects.filter(key_hash=key_hash).exists(),  # pylint: disable=no-member
            operation="key_hash_exists",
            table="licenses",
            timeout=self.timeout,
        )

    async def find_by_owner(self, owner_id: str) -> List[License]:
        """
        Find all licenses of an owner.

        Args:
            owner_id: Owner reference

        Returns:
            List of License entities
        """
        models = await run_in_db(
            lambda: list(LicenseModel.objects.filter(owner_id=owner_id)),  # pylint: disable=no-member
            operation="find_by_owner",
            table="licenses",
            timeout=self.timeout,
        )
        return [self.to_domain(model) for model in models]
