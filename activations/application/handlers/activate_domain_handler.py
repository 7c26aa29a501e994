"""
ActivateDomainHandler.

Handler for binding a domain to a license.
"""
import logging

from activations.application.commands.activate_domain import ActivateDomainCommand
from activations.application.dto.activation_dto import ActivateDomainResponseDTO
from activations.domain.domain_name import normalize_domain
from activations.domain.events import DomainActivated
from activations.domain.services import ActivationLedger
from core.domain.value_objects import DenialReason
from core.infrastructure.events import event_bus
from core.metrics import license_activations_total
from licenses.domain.services import LicenseResolver

logger = logging.getLogger(__name__)


class ActivateDomainHandler:
    """Handler for ActivateDomainCommand."""

    def __init__(self, resolver: LicenseResolver, ledger: ActivationLedger):
        """Initialize handler with key resolver and activation ledger."""
        self.resolver = resolver
        self.ledger = ledger

    async def handle(self, command: ActivateDomainCommand) -> ActivateDomainResponseDTO:
        """
        Handle activate domain command.

        Args:
            command: ActivateDomainCommand

        Returns:
            ActivateDomainResponseDTO; business denials carry a reason

        Raises:
            InvalidDomainError: If the domain cannot be normalized
            InvalidLicenseKeyError: If the key is malformed
            TransientStorageError: If storage is unavailable
        """
        domain = normalize_domain(command.domain)

        license = await self.resolver.resolve(command.license_key)
        if license is None:
            license_activations_total.labels(result=DenialReason.NOT_FOUND.value).inc()
            return ActivateDomainResponseDTO(success=False, reason=DenialReason.NOT_FOUND.value)

        result = await self.ledger.activate(
            license, domain, command.client_ip, user_agent=command.user_agent
        )

        if not result.success:
            license_activations_total.labels(result=result.reason.value).inc()
            return ActivateDomainResponseDTO(
                success=False,
                status=result.status.value,
                reason=result.reason.value,
                expires_at=license.expires_at,
                remaining_activations=result.remaining_activations,
            )

        license_activations_total.labels(result="success").inc()
        if result.created:
            await event_bus.publish(
                DomainActivated(
                    aggregate_id=str(license.id),
                    activation_id=str(result.activation.id),
                    domain=domain,
                    remaining_activations=result.remaining_activations,
                )
            )

        return ActivateDomainResponseDTO(
            success=True,
            status=result.status.value,
            expires_at=license.expires_at,
            remaining_activations=result.remaining_activations,
            activation_id=result.activation.id,
        )
