"""
Django management command to create a license.

Stands in for order fulfillment. The plaintext key is printed once and
cannot be recovered afterwards.
"""
import logging
from datetime import timedelta
from datetime import timezone as dt_timezone

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core import engine
from core.config import get_engine_config
from core.domain.exceptions import DomainException
from licenses.application.commands.create_license import CreateLicenseCommand
from licenses.application.handlers.create_license_handler import CreateLicenseHandler
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to create a license."""

    help = "Create a license for an owner and product and print its key"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument("--owner", required=True, help="Owner reference")
        parser.add_argument("--product", required=True, help="Product reference")
        parser.add_argument("--order", default=None, help="Order or subscription reference")
        parser.add_argument(
            "--max-activations",
            type=int,
            default=None,
            help="Activation limit (0 or omitted for unlimited)",
        )
        expiry = parser.add_mutually_exclusive_group()
        expiry.add_argument("--expires-at", default=None, help="ISO 8601 expiration date")
        expiry.add_argument("--days", type=int, default=None, help="Expire after N days")
        parser.add_argument(
            "--grace-days",
            type=int,
            default=None,
            help="Grace period after expiry (defaults to GRACE_PERIOD_DAYS)",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        expires_at = None
        if options["expires_at"]:
            expires_at = parse_datetime(options["expires_at"])
            if expires_at is None:
                raise CommandError(f"Invalid --expires-at: {options['expires_at']}")
            if timezone.is_naive(expires_at):
                expires_at = timezone.make_aware(expires_at, dt_timezone.utc)
        elif options["days"] is not None:
            expires_at = timezone.now() + timedelta(days=options["days"])

        config = get_engine_config()
        handler = CreateLicenseHandler(
            license_repository=DjangoLicenseRepository(timeout=config.storage_timeout),
            key_service=engine.key_service(config),
            key_generation_attempts=config.key_generation_attempts,
            default_grace_days=config.grace_period_days,
        )
        command = CreateLicenseCommand(
            owner_id=options["owner"],
            product_id=options["product"],
            order_ref=options["order"],
            max_activations=options["max_activations"],
            expires_at=expires_at,
            grace_days=options["grace_days"],
        )

        try:
            result = async_to_sync(handler.handle)(command)
        except (DomainException, ValueError) as e:
            raise CommandError(str(e)) from e

        self.stdout.write(self.style.SUCCESS(f"License {result.license_id} created"))
        self.stdout.write(f"  Key:             {result.license_key}")
        self.stdout.write(f"  Expires at:      {result.expires_at or 'never'}")
        self.stdout.write(f"  Grace until:     {result.grace_until or '-'}")
        self.stdout.write(f"  Max activations: {result.max_activations or 'unlimited'}")
        self.stdout.write(self.style.WARNING("Store the key now; it cannot be shown again."))
