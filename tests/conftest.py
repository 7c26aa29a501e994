"""
Pytest configuration and shared fixtures.
"""

from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone

from activations.domain.domain_name import DomainAllowList
from activations.domain.services import ActivationLedger
from core.config import get_engine_config
from core.infrastructure.event_handlers import register_event_handlers
from core.infrastructure.events import event_bus
from licenses.domain.license import License
from licenses.domain.license_key import LicenseKeyService
from licenses.domain.services import LicenseResolver
from tests.fakes import (
    TEST_IP_SALT,
    TEST_KEY_SALT,
    TEST_SERVER_SECRET,
    InMemoryActivationRepository,
    InMemoryLicenseRepository,
    RecordingEventHandler,
)


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Rebuild cached engine config, the event bus and the cache per test."""
    get_engine_config.cache_clear()
    cache.clear()
    yield
    get_engine_config.cache_clear()
    event_bus.clear()
    register_event_handlers()
    cache.clear()


@pytest.fixture
def key_service():
    """Fixture for LicenseKeyService."""
    return LicenseKeyService(key_salt=TEST_KEY_SALT, server_secret=TEST_SERVER_SECRET)


@pytest.fixture
def allow_list():
    """Fixture for the exempt-domain allow-list."""
    return DomainAllowList(["staging.example.com"])


@pytest.fixture
def license_repository():
    """Fixture for an in-memory LicenseRepository."""
    return InMemoryLicenseRepository()


@pytest.fixture
def activation_repository():
    """Fixture for an in-memory ActivationRepository."""
    return InMemoryActivationRepository()


@pytest.fixture
def resolver(key_service, license_repository):
    """Fixture for LicenseResolver."""
    return LicenseResolver(key_service, license_repository)


@pytest.fixture
def ledger(activation_repository, allow_list):
    """Fixture for ActivationLedger."""
    return ActivationLedger(
        repository=activation_repository,
        allow_list=allow_list,
        ip_salt=TEST_IP_SALT,
    )


@pytest.fixture
def make_license(key_service, license_repository):
    """
    Factory fixture storing a license in the in-memory repository.

    Returns an async callable yielding (plaintext key, License).
    """

    async def _make(
        max_activations=3,
        expires_at=None,
        grace_days=7,
        owner_id="owner-1",
        product_id="product-1",
        days=365,
    ):
        if expires_at is None and days is not None:
            expires_at = timezone.now() + timedelta(days=days)
        plaintext = key_service.generate(product_id, owner_id)
        hashes = key_service.hash_key(plaintext)
        license = License.create(
            owner_id=owner_id,
            product_id=product_id,
            key_hash=hashes.primary_hash,
            verification_hash=hashes.verification_hash,
            max_activations=max_activations,
            expires_at=expires_at,
            grace_days=grace_days,
        )
        await license_repository.save(license)
        return plaintext, license

    return _make


@pytest.fixture
def recorded_events():
    """Subscribe a recording handler to the given event types."""
    recorder = RecordingEventHandler()

    def _subscribe(*event_types):
        for event_type in event_types:
            event_bus.subscribe(event_type, recorder)
        return recorder.events

    return _subscribe


@pytest.fixture
def api_client():
    """Fixture for DRF API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def issued_license(db):  # pylint: disable=unused-argument
    """
    Factory fixture creating a license in the database.

    Uses the configured engine secrets so the API resolves the key.
    Returns a CreateLicenseResponseDTO.
    """
    from asgiref.sync import async_to_sync

    from core import engine
    from licenses.application.commands.create_license import CreateLicenseCommand
    from licenses.application.handlers.create_license_handler import CreateLicenseHandler
    from licenses.infrastructure.repositories.django_license_repository import (
        DjangoLicenseRepository,
    )

    def _issue(
        max_activations=3,
        expires_at=None,
        days=365,
        grace_days=7,
        owner_id="owner-1",
        product_id="product-1",
    ):
        if expires_at is None and days is not None:
            expires_at = timezone.now() + timedelta(days=days)
        handler = CreateLicenseHandler(DjangoLicenseRepository(), engine.key_service())
        return async_to_sync(handler.handle)(
            CreateLicenseCommand(
                owner_id=owner_id,
                product_id=product_id,
                max_activations=max_activations,
                expires_at=expires_at,
                grace_days=grace_days,
            )
        )

    return _issue
