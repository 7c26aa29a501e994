"""
Engine service factories.

Builds the domain services from the process-wide EngineConfig so views,
middleware and management commands share one wiring.
"""
from typing import Optional

from activations.domain.domain_name import DomainAllowList
from activations.domain.services import ActivationLedger
from activations.ports.activation_repository import ActivationRepository
from core.config import EngineConfig, get_engine_config
from core.infrastructure.cache import CachePort
from core.infrastructure.cache_adapters import cache_adapter
from core.infrastructure.rate_limiter import RateLimiter
from downloads.domain.signed_url import SignedUrlService
from downloads.infrastructure.storage.filesystem_release_storage import (
    FilesystemReleaseStorage,
)
from licenses.domain.license_key import LicenseKeyService
from licenses.domain.services import LicenseResolver
from licenses.ports.license_repository import LicenseRepository


def key_service(config: Optional[EngineConfig] = None) -> LicenseKeyService:
    """Build the key service."""
    config = config or get_engine_config()
    return LicenseKeyService(
        key_salt=config.secrets.key_salt, server_secret=config.secrets.server_secret
    )


def license_resolver(
    repository: LicenseRepository, config: Optional[EngineConfig] = None
) -> LicenseResolver:
    """Build the resolver from plaintext keys to licenses."""
    return LicenseResolver(key_service(config), repository)


def allow_list(config: Optional[EngineConfig] = None) -> DomainAllowList:
    """Build the exempt-domain allow-list."""
    config = config or get_engine_config()
    return DomainAllowList(config.developer_domains)


def activation_ledger(
    repository: ActivationRepository, config: Optional[EngineConfig] = None
) -> ActivationLedger:
    """Build the activation ledger."""
    config = config or get_engine_config()
    return ActivationLedger(
        repository=repository,
        allow_list=allow_list(config),
        ip_salt=config.secrets.ip_salt,
        exempt_bypass_expiry=config.exempt_domains_bypass_expiry,
    )


def signed_url_service(config: Optional[EngineConfig] = None) -> SignedUrlService:
    """Build the signed download URL service."""
    config = config or get_engine_config()
    return SignedUrlService(
        secret=config.secrets.server_secret,
        base_url=config.download_url,
        default_ttl=config.signed_url_ttl,
    )


def release_storage(config: Optional[EngineConfig] = None) -> FilesystemReleaseStorage:
    """Build the release file storage."""
    config = config or get_engine_config()
    return FilesystemReleaseStorage(config.releases_dir)


def rate_limiter(
    cache: Optional[CachePort] = None, config: Optional[EngineConfig] = None
) -> RateLimiter:
    """Build the request rate limiter."""
    config = config or get_engine_config()
    return RateLimiter(
        cache=cache or cache_adapter,
        rules=config.rate_limits,
        block_duration=config.block_duration,
    )
