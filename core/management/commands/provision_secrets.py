"""
Django management command to provision server secrets.

Generates and persists any secret not given through settings. Run it once
at deployment; the server refuses to start when secrets are unavailable.
"""
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from core.infrastructure.secrets import provision_secrets

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to provision server secrets."""

    help = "Generate and persist missing server secrets"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            "--secrets-file",
            type=str,
            default=None,
            help="Override LICENSE_ENGINE['SECRETS_FILE']",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        engine_options = getattr(settings, "LICENSE_ENGINE", {})
        secrets_file = options["secrets_file"] or engine_options.get("SECRETS_FILE")

        try:
            provision_secrets(
                {
                    "server_secret": engine_options.get("SERVER_SECRET"),
                    "key_salt": engine_options.get("KEY_SALT"),
                    "ip_salt": engine_options.get("IP_SALT"),
                },
                secrets_file=secrets_file,
            )
        except ImproperlyConfigured as e:
            raise CommandError(str(e)) from e

        self.stdout.write(self.style.SUCCESS("Server secrets are provisioned"))
