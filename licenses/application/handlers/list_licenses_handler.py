"""
ListLicensesByOwnerHandler.

Handler for listing an owner's licenses with their activation usage.
"""
from typing import List

from activations.domain.domain_name import DomainAllowList
from activations.ports.activation_repository import ActivationRepository
from licenses.application.dto.license_dto import LicenseDTO
from licenses.application.queries.list_licenses_by_owner import ListLicensesByOwnerQuery
from licenses.domain.license_key import LicenseKeyService
from licenses.ports.license_repository import LicenseRepository


class ListLicensesByOwnerHandler:
    """Handler for ListLicensesByOwnerQuery."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        activation_repository: ActivationRepository,
        allow_list: DomainAllowList,
    ):
        """Initialize handler with repositories and the exempt-domain allow-list."""
        self.license_repository = license_repository
        self.activation_repository = activation_repository
        self.allow_list = allow_list

    async def handle(self, query: ListLicensesByOwnerQuery) -> List[LicenseDTO]:
        """
        Handle list licenses query.

        Args:
            query: ListLicensesByOwnerQuery

        Returns:
            List of LicenseDTO, keys masked
        """
        licenses = await self.license_repository.find_by_owner(query.owner_id)

        result = []
        for license in licenses:
            active = await self.activation_repository.find_active_by_license(license.id)
            used = sum(1 for a in active if not self.allow_list.is_exempt(a.domain))
            remaining = (
                None
                if license.max_activations is None
                else max(0, license.max_activations - used)
            )
            result.append(
                LicenseDTO(
                    id=license.id,
                    product_id=license.product_id,
                    key_mask=LicenseKeyService.mask(license.key_hash),
                    status=license.status.value,
                    effective_status=license.effective_status().value,
                    expires_at=license.expires_at,
                    grace_until=license.grace_until,
                    max_activations=license.max_activations,
                    active_activations=len(active),
                    remaining_activations=remaining,
                    created_at=license.created_at,
                )
            )
        return result
