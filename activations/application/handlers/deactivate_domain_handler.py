"""
DeactivateDomainHandler.

Handler for releasing a domain's activation.
"""

from activations.application.commands.deactivate_domain import DeactivateDomainCommand
from activations.application.dto.activation_dto import DeactivateDomainResponseDTO
from activations.domain.domain_name import normalize_domain
from activations.domain.events import DomainDeactivated
from activations.domain.services import ActivationLedger
from core.domain.value_objects import DenialReason
from core.infrastructure.events import event_bus
from core.metrics import license_deactivations_total
from licenses.domain.services import LicenseResolver


class DeactivateDomainHandler:
    """Handler for DeactivateDomainCommand."""

    def __init__(self, resolver: LicenseResolver, ledger: ActivationLedger):
        """Initialize handler with key resolver and activation ledger."""
        self.resolver = resolver
        self.ledger = ledger

    async def handle(self, command: DeactivateDomainCommand) -> DeactivateDomainResponseDTO:
        """
        Handle deactivate domain command.

        Deactivation is allowed whatever the license status, so expired
        licenses can still free their slots.

        Args:
            command: DeactivateDomainCommand

        Returns:
            DeactivateDomainResponseDTO
        """
        domain = normalize_domain(command.domain)

        license = await self.resolver.resolve(command.license_key)
        if license is None:
            license_deactivations_total.labels(result=DenialReason.NOT_FOUND.value).inc()
            return DeactivateDomainResponseDTO(success=False, reason=DenialReason.NOT_FOUND.value)

        deactivated = await self.ledger.deactivate(license, domain, reason=command.reason)
        remaining = await self.ledger.remaining_activations(license)

        if not deactivated:
            license_deactivations_total.labels(
                result=DenialReason.DOMAIN_NOT_ACTIVATED.value
            ).inc()
            return DeactivateDomainResponseDTO(
                success=False,
                reason=DenialReason.DOMAIN_NOT_ACTIVATED.value,
                remaining_activations=remaining,
            )

        license_deactivations_total.labels(result="success").inc()
        await event_bus.publish(
            DomainDeactivated(aggregate_id=str(license.id), domain=domain, reason=command.reason)
        )
        return DeactivateDomainResponseDTO(success=True, remaining_activations=remaining)
