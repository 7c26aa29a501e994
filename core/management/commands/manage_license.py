"""
Django management command for administrative license transitions.
"""
import uuid
from datetime import timezone as dt_timezone

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.config import get_engine_config
from core.domain.exceptions import DomainException
from licenses.application.commands.change_license_status import (
    ChangeLicenseStatusCommand,
    RenewLicenseCommand,
    StatusAction,
)
from licenses.application.handlers.license_lifecycle_handlers import (
    ChangeLicenseStatusHandler,
    RenewLicenseHandler,
)
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository

RENEW = "renew"


class Command(BaseCommand):
    """Command to change a license's status or expiration."""

    help = "Suspend, revoke, deactivate, reactivate or renew a license"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            "action",
            choices=[action.value for action in StatusAction] + [RENEW],
            help="Transition to apply",
        )
        parser.add_argument("license_id", type=uuid.UUID, help="License UUID")
        parser.add_argument(
            "--expires-at",
            default=None,
            help="New ISO 8601 expiration date for renew ('never' for perpetual)",
        )
        parser.add_argument("--grace-days", type=int, default=None, help="Grace period for renew")

    def handle(self, *args, **options):
        """Execute the command."""
        config = get_engine_config()
        repository = DjangoLicenseRepository(timeout=config.storage_timeout)

        try:
            if options["action"] == RENEW:
                license = async_to_sync(
                    RenewLicenseHandler(repository, default_grace_days=config.grace_period_days).handle
                )(
                    RenewLicenseCommand(
                        license_id=options["license_id"],
                        expires_at=self._parse_expiry(options["expires_at"]),
                        grace_days=options["grace_days"],
                    )
                )
            else:
                license = async_to_sync(ChangeLicenseStatusHandler(repository).handle)(
                    ChangeLicenseStatusCommand(
                        license_id=options["license_id"],
                        action=StatusAction(options["action"]),
                    )
                )
        except (DomainException, ValueError) as e:
            raise CommandError(str(e)) from e

        self.stdout.write(
            self.style.SUCCESS(
                f"License {license.id}: status={license.status.value} "
                f"effective={license.effective_status().value} "
                f"expires_at={license.expires_at or 'never'}"
            )
        )

    @staticmethod
    def _parse_expiry(value):
        if not value:
            raise CommandError("renew requires --expires-at")
        if value == "never":
            return None
        expires_at = parse_datetime(value)
        if expires_at is None:
            raise CommandError(f"Invalid --expires-at: {value}")
        if timezone.is_naive(expires_at):
            expires_at = timezone.make_aware(expires_at, dt_timezone.utc)
        return expires_at
