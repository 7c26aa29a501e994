"""
App configuration for the License Server project.
"""

import logging
import os
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)

# Management commands that must start without secrets or instrumentation.
SKIP_STARTUP_COMMANDS = {
    "makemigrations",
    "migrate",
    "collectstatic",
    "check",
    "provision_secrets",
}


class LicenseServerConfig(AppConfig):
    """App configuration for LicenseServer."""

    name = "LicenseServer"
    verbose_name = "License Server"

    def ready(self):
        """
        Called when Django starts.

        Loads the engine configuration (provisioning secrets, failing fast
        when they are unavailable), registers event handlers and sets up
        observability.
        """
        if len(sys.argv) > 1 and sys.argv[1] in SKIP_STARTUP_COMMANDS:
            return

        # The autoreloader's parent process does not serve requests.
        if os.environ.get("RUN_MAIN") == "false":
            return

        from core.config import get_engine_config
        from core.infrastructure.event_handlers import register_event_handlers

        get_engine_config()
        register_event_handlers()

        if getattr(settings, "OBSERVABILITY_ENABLED", True):
            self.setup_observability()

    def setup_observability(self):
        """Setup OpenTelemetry; the server still starts if the exporter fails."""
        from core.instrumentation import setup_opentelemetry

        try:
            setup_opentelemetry()
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to setup OpenTelemetry: %s", e)
