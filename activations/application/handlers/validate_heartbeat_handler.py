"""
ValidateHeartbeatHandler.

Handler for heartbeats from activated installations.
"""

from activations.application.commands.validate_heartbeat import ValidateHeartbeatCommand
from activations.application.dto.activation_dto import HeartbeatResponseDTO
from activations.domain.domain_name import normalize_domain
from activations.domain.services import ActivationLedger
from core.domain.value_objects import DenialReason
from core.metrics import license_validations_total
from licenses.domain.services import LicenseResolver


class ValidateHeartbeatHandler:
    """Handler for ValidateHeartbeatCommand."""

    def __init__(self, resolver: LicenseResolver, ledger: ActivationLedger):
        """Initialize handler with key resolver and activation ledger."""
        self.resolver = resolver
        self.ledger = ledger

    async def handle(self, command: ValidateHeartbeatCommand) -> HeartbeatResponseDTO:
        """
        Handle heartbeat command.

        Args:
            command: ValidateHeartbeatCommand

        Returns:
            HeartbeatResponseDTO with the effective status
        """
        domain = normalize_domain(command.domain)

        license = await self.resolver.resolve(command.license_key)
        if license is None:
            license_validations_total.labels(result=DenialReason.NOT_FOUND.value).inc()
            return HeartbeatResponseDTO(success=False, reason=DenialReason.NOT_FOUND.value)

        result = await self.ledger.validate(license, domain, command.client_ip)
        license_validations_total.labels(
            result="success" if result.success else result.reason.value
        ).inc()

        return HeartbeatResponseDTO(
            success=result.success,
            status=result.status.value,
            reason=result.reason.value if result.reason else None,
            expires_at=license.expires_at,
            grace_until=license.grace_until,
        )
