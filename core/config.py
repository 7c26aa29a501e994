"""
Engine configuration.

All engine options are read once from ``settings.LICENSE_ENGINE`` into an
immutable EngineConfig that is handed to components at construction time.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from core.infrastructure.secrets import ServerSecrets, provision_secrets

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMITS = {
    "activate": (10, 300),
    "validate": (60, 300),
    "deactivate": (10, 300),
    "download": (10, 3600),
    "update_check": (60, 300),
    "download_token": (60, 300),
    "default": (60, 300),
}


@dataclass(frozen=True)
class RateLimitRule:
    """Request limit for one action within a sliding window."""

    limit: int
    window: int

    def __post_init__(self):
        """Validate rule bounds."""
        if self.limit < 1:
            raise ImproperlyConfigured("Rate limit must be at least 1")
        if self.window < 1:
            raise ImproperlyConfigured("Rate limit window must be at least 1 second")


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine configuration.

    Attributes:
        secrets: Server secrets for hashing and signing
        signed_url_ttl: Default lifetime of download links, in seconds
        download_url: Base URL of the download endpoint
        developer_domains: Extra exempt domain patterns
        exempt_domains_bypass_expiry: Let exempt domains keep working
            while a license is expired (revoked/suspended still denied)
        rate_limits: Rate limit rule per action
        block_duration: Seconds an identifier stays blocked after a breach
        storage_timeout: Seconds before a storage call is abandoned
        key_generation_attempts: Bound on unique key generation retries
        grace_period_days: Default grace period for new licenses, in days
        releases_dir: Root directory of release files
        trusted_proxy_headers: META keys trusted for the client IP
    """

    secrets: ServerSecrets
    signed_url_ttl: int = 300
    download_url: str = "/api/v1/updates/download"
    developer_domains: Tuple[str, ...] = ()
    exempt_domains_bypass_expiry: bool = False
    rate_limits: Mapping[str, RateLimitRule] = field(
        default_factory=lambda: {
            action: RateLimitRule(limit, window)
            for action, (limit, window) in DEFAULT_RATE_LIMITS.items()
        }
    )
    block_duration: int = 900
    storage_timeout: float = 5.0
    key_generation_attempts: int = 10
    grace_period_days: int = 7
    releases_dir: Optional[Path] = None
    trusted_proxy_headers: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate option ranges."""
        if not 60 <= self.signed_url_ttl <= 3600:
            raise ImproperlyConfigured("SIGNED_URL_TTL must be between 60 and 3600 seconds")
        if self.block_duration < 0:
            raise ImproperlyConfigured("BLOCK_DURATION cannot be negative")
        if self.storage_timeout <= 0:
            raise ImproperlyConfigured("STORAGE_TIMEOUT must be positive")
        if self.key_generation_attempts < 1:
            raise ImproperlyConfigured("KEY_GENERATION_ATTEMPTS must be at least 1")
        if self.grace_period_days < 0:
            raise ImproperlyConfigured("GRACE_PERIOD_DAYS cannot be negative")
        if "default" not in self.rate_limits:
            raise ImproperlyConfigured("RATE_LIMITS must define a 'default' rule")

    def rate_limit_for(self, action: str) -> RateLimitRule:
        """
        Get the rate limit rule for an action.

        Args:
            action: Action name (activate, validate, download, ...)

        Returns:
            The action's rule, or the default rule for unknown actions
        """
        return self.rate_limits.get(action, self.rate_limits["default"])

    @classmethod
    def from_settings(cls, options: Optional[Dict[str, Any]] = None) -> "EngineConfig":
        """
        Build configuration from a LICENSE_ENGINE settings dictionary.

        Args:
            options: Options dictionary (defaults to settings.LICENSE_ENGINE)

        Returns:
            EngineConfig instance

        Raises:
            ImproperlyConfigured: If an option is invalid or secrets cannot be provisioned
        """
        if options is None:
            options = getattr(settings, "LICENSE_ENGINE", {})

        server_secrets = provision_secrets(
            {
                "server_secret": options.get("SERVER_SECRET"),
                "key_salt": options.get("KEY_SALT"),
                "ip_salt": options.get("IP_SALT"),
            },
            secrets_file=options.get("SECRETS_FILE"),
        )

        rate_limits = dict(DEFAULT_RATE_LIMITS)
        rate_limits.update(options.get("RATE_LIMITS", {}))

        developer_domains = options.get("DEVELOPER_DOMAINS", ())
        if isinstance(developer_domains, str):
            developer_domains = (developer_domains,)

        releases_dir = options.get("RELEASES_DIR")

        try:
            return cls(
                secrets=server_secrets,
                signed_url_ttl=int(options.get("SIGNED_URL_TTL", 300)),
                download_url=options.get("DOWNLOAD_URL", "/api/v1/updates/download"),
                developer_domains=tuple(developer_domains),
                exempt_domains_bypass_expiry=bool(
                    options.get("EXEMPT_DOMAINS_BYPASS_EXPIRY", False)
                ),
                rate_limits={
                    action: RateLimitRule(int(limit), int(window))
                    for action, (limit, window) in rate_limits.items()
                },
                block_duration=int(options.get("BLOCK_DURATION", 900)),
                storage_timeout=float(options.get("STORAGE_TIMEOUT", 5.0)),
                key_generation_attempts=int(options.get("KEY_GENERATION_ATTEMPTS", 10)),
                grace_period_days=int(options.get("GRACE_PERIOD_DAYS", 7)),
                releases_dir=Path(releases_dir) if releases_dir else None,
                trusted_proxy_headers=tuple(options.get("TRUSTED_PROXY_HEADERS", ())),
            )
        except (TypeError, ValueError) as e:
            raise ImproperlyConfigured(f"Invalid LICENSE_ENGINE option: {e}") from e


@lru_cache(maxsize=1)
def get_engine_config() -> EngineConfig:
    """
    Get the process-wide engine configuration.

    Returns:
        EngineConfig built from settings on first call
    """
    config = EngineConfig.from_settings()
    logger.info(
        "License engine configured",
        extra={
            "signed_url_ttl": config.signed_url_ttl,
            "block_duration": config.block_duration,
            "developer_domains": list(config.developer_domains),
            "exempt_domains_bypass_expiry": config.exempt_domains_bypass_expiry,
        },
    )
    return config
