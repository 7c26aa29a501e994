"""
License lifecycle handlers.

Handlers for administrative status changes and renewals.
"""
import logging

from core.domain.exceptions import LicenseNotFoundError
from core.infrastructure.events import event_bus
from core.metrics import license_status_changes_total
from licenses.application.commands.change_license_status import (
    ChangeLicenseStatusCommand,
    RenewLicenseCommand,
    StatusAction,
)
from licenses.domain.events import LicenseStatusChanged
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class ChangeLicenseStatusHandler:
    """Handler for ChangeLicenseStatusCommand."""

    def __init__(self, license_repository: LicenseRepository):
        """Initialize handler with repository."""
        self.license_repository = license_repository

    async def handle(self, command: ChangeLicenseStatusCommand) -> License:
        """
        Handle change license status command.

        Args:
            command: ChangeLicenseStatusCommand

        Returns:
            Updated License entity

        Raises:
            LicenseNotFoundError: If license not found
            InvalidLicenseStatusError: If the transition is not allowed
        """
        license = await self.license_repository.find_by_id(command.license_id)
        if not license:
            raise LicenseNotFoundError(f"License {command.license_id} not found")

        transitions = {
            StatusAction.SUSPEND: license.suspend,
            StatusAction.REVOKE: license.revoke,
            StatusAction.DEACTIVATE: license.deactivate,
            StatusAction.REACTIVATE: license.reactivate,
        }
        updated = await self.license_repository.save(transitions[command.action]())

        license_status_changes_total.labels(status=updated.status.value).inc()
        logger.info(
            "License status changed",
            extra={
                "license_id": str(updated.id),
                "old_status": license.status.value,
                "new_status": updated.status.value,
            },
        )
        await event_bus.publish(
            LicenseStatusChanged(
                aggregate_id=str(updated.id),
                old_status=license.status.value,
                new_status=updated.status.value,
            )
        )
        return updated


class RenewLicenseHandler:
    """Handler for RenewLicenseCommand."""

    def __init__(self, license_repository: LicenseRepository, default_grace_days: int = 7):
        """Initialize handler with repository."""
        self.license_repository = license_repository
        self.default_grace_days = default_grace_days

    async def handle(self, command: RenewLicenseCommand) -> License:
        """
        Handle renew license command.

        Args:
            command: RenewLicenseCommand

        Returns:
            Renewed License entity

        Raises:
            LicenseNotFoundError: If license not found
        """
        license = await self.license_repository.find_by_id(command.license_id)
        if not license:
            raise LicenseNotFoundError(f"License {command.license_id} not found")

        grace_days = (
            self.default_grace_days if command.grace_days is None else command.grace_days
        )
        renewed = await self.license_repository.save(
            license.renew(command.expires_at, grace_days=grace_days)
        )
        logger.info(
            "License renewed",
            extra={
                "license_id": str(renewed.id),
                "expires_at": renewed.expires_at.isoformat() if renewed.expires_at else None,
            },
        )
        return renewed
