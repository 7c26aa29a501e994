"""
Django management command to list an owner's licenses.
"""
from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from activations.infrastructure.repositories.django_activation_repository import (
    DjangoActivationRepository,
)
from core import engine
from core.config import get_engine_config
from licenses.application.handlers.list_licenses_handler import ListLicensesByOwnerHandler
from licenses.application.queries.list_licenses_by_owner import ListLicensesByOwnerQuery
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository


class Command(BaseCommand):
    """Command to list licenses by owner."""

    help = "List an owner's licenses with masked keys and activation usage"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument("owner", help="Owner reference")

    def handle(self, *args, **options):
        """Execute the command."""
        config = get_engine_config()
        handler = ListLicensesByOwnerHandler(
            license_repository=DjangoLicenseRepository(timeout=config.storage_timeout),
            activation_repository=DjangoActivationRepository(timeout=config.storage_timeout),
            allow_list=engine.allow_list(config),
        )
        licenses = async_to_sync(handler.handle)(ListLicensesByOwnerQuery(owner_id=options["owner"]))

        if not licenses:
            self.stdout.write(f"No licenses for {options['owner']}")
            return

        for license in licenses:
            remaining = (
                "unlimited" if license.remaining_activations is None else license.remaining_activations
            )
            self.stdout.write(
                f"{license.id}  {license.key_mask}  product={license.product_id}  "
                f"status={license.effective_status}  active={license.active_activations}  "
                f"remaining={remaining}  expires_at={license.expires_at or 'never'}"
            )
