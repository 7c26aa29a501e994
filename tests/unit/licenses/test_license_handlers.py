"""
Unit tests for license application handlers and the key resolver.
"""

import uuid
from dataclasses import replace
from datetime import timedelta

import pytest
from django.utils import timezone

from activations.domain.activation import Activation
from core.domain.exceptions import (
    InvalidLicenseKeyError,
    InvalidLicenseStatusError,
    LicenseNotFoundError,
)
from core.domain.value_objects import LicenseStatus
from licenses.application.commands.change_license_status import (
    ChangeLicenseStatusCommand,
    RenewLicenseCommand,
    StatusAction,
)
from licenses.application.commands.create_license import CreateLicenseCommand
from licenses.application.handlers.create_license_handler import CreateLicenseHandler
from licenses.application.handlers.license_lifecycle_handlers import (
    ChangeLicenseStatusHandler,
    RenewLicenseHandler,
)
from licenses.application.handlers.list_licenses_handler import ListLicensesByOwnerHandler
from licenses.application.queries.list_licenses_by_owner import ListLicensesByOwnerQuery
from licenses.domain.events import LicenseCreated, LicenseStatusChanged


@pytest.mark.asyncio
class TestCreateLicenseHandler:
    """Tests for CreateLicenseHandler."""

    async def test_create_license(self, key_service, license_repository, recorded_events):
        """Test the key is returned once and only its hash is stored."""
        events = recorded_events(LicenseCreated)
        handler = CreateLicenseHandler(license_repository, key_service, default_grace_days=7)
        expires_at = timezone.now() + timedelta(days=365)

        result = await handler.handle(
            CreateLicenseCommand(
                owner_id="owner-1",
                product_id="product-1",
                order_ref="order-42",
                max_activations=3,
                expires_at=expires_at,
            )
        )

        stored = await license_repository.find_by_id(result.license_id)
        assert stored.key_hash == key_service.hash_key(result.license_key).primary_hash
        assert result.license_key not in repr(stored)
        assert stored.order_ref == "order-42"
        assert stored.grace_until == expires_at + timedelta(days=7)
        assert result.key_mask == key_service.mask(stored.key_hash)
        assert len(events) == 1
        assert events[0].aggregate_id == str(result.license_id)

    async def test_explicit_grace_days(self, key_service, license_repository):
        """Test a per-license grace period overrides the default."""
        handler = CreateLicenseHandler(license_repository, key_service, default_grace_days=7)
        expires_at = timezone.now() + timedelta(days=30)

        result = await handler.handle(
            CreateLicenseCommand(
                owner_id="owner-1", product_id="product-1", expires_at=expires_at, grace_days=0
            )
        )

        assert result.grace_until is None

    async def test_unlimited_license(self, key_service, license_repository):
        """Test licenses without a limit are unlimited."""
        handler = CreateLicenseHandler(license_repository, key_service)

        result = await handler.handle(
            CreateLicenseCommand(owner_id="owner-1", product_id="product-1")
        )

        assert result.max_activations is None
        assert result.expires_at is None


@pytest.mark.asyncio
class TestLicenseResolver:
    """Tests for LicenseResolver."""

    async def test_resolves_plaintext_key(self, resolver, make_license):
        """Test a valid key resolves to its license."""
        plaintext, license = await make_license()

        assert (await resolver.resolve(plaintext)).id == license.id
        assert (await resolver.resolve(plaintext.lower())).id == license.id

    async def test_unknown_key_not_found(self, resolver):
        """Test an unknown key resolves to None."""
        assert await resolver.resolve("FFFFFFFF-FFFFFFFF-FFFFFFFF-FFFFFFFF") is None

    async def test_malformed_key_rejected(self, resolver):
        """Test a malformed key raises before storage is queried."""
        with pytest.raises(InvalidLicenseKeyError):
            await resolver.resolve("not-a-key")

    async def test_tampered_verification_hash(self, resolver, make_license, license_repository):
        """Test a record with a mismatching verification hash does not resolve."""
        plaintext, license = await make_license()
        await license_repository.save(replace(license, verification_hash="0" * 64))

        assert await resolver.resolve(plaintext) is None


@pytest.mark.asyncio
class TestLifecycleHandlers:
    """Tests for ChangeLicenseStatusHandler and RenewLicenseHandler."""

    async def test_suspend_and_reactivate(self, make_license, license_repository, recorded_events):
        """Test status changes are stored and published."""
        events = recorded_events(LicenseStatusChanged)
        _, license = await make_license()
        handler = ChangeLicenseStatusHandler(license_repository)

        suspended = await handler.handle(
            ChangeLicenseStatusCommand(license_id=license.id, action=StatusAction.SUSPEND)
        )
        reactivated = await handler.handle(
            ChangeLicenseStatusCommand(license_id=license.id, action=StatusAction.REACTIVATE)
        )

        assert suspended.status == LicenseStatus.SUSPENDED
        assert reactivated.status == LicenseStatus.ACTIVE
        assert [(e.old_status, e.new_status) for e in events] == [
            ("active", "suspended"),
            ("suspended", "active"),
        ]

    async def test_revoked_cannot_be_reactivated(self, make_license, license_repository):
        """Test revocation is terminal."""
        _, license = await make_license()
        handler = ChangeLicenseStatusHandler(license_repository)
        await handler.handle(
            ChangeLicenseStatusCommand(license_id=license.id, action=StatusAction.REVOKE)
        )

        with pytest.raises(InvalidLicenseStatusError):
            await handler.handle(
                ChangeLicenseStatusCommand(license_id=license.id, action=StatusAction.REACTIVATE)
            )

    async def test_unknown_license(self, license_repository):
        """Test transitions on unknown licenses raise LicenseNotFoundError."""
        handler = ChangeLicenseStatusHandler(license_repository)

        with pytest.raises(LicenseNotFoundError):
            await handler.handle(
                ChangeLicenseStatusCommand(license_id=uuid.uuid4(), action=StatusAction.SUSPEND)
            )

    async def test_renew(self, make_license, license_repository):
        """Test renewal applies the default grace period."""
        _, license = await make_license(expires_at=timezone.now() - timedelta(days=30))
        new_expiration = timezone.now() + timedelta(days=365)

        renewed = await RenewLicenseHandler(license_repository, default_grace_days=5).handle(
            RenewLicenseCommand(license_id=license.id, expires_at=new_expiration)
        )

        assert renewed.expires_at == new_expiration
        assert renewed.grace_until == new_expiration + timedelta(days=5)
        assert renewed.is_usable()


@pytest.mark.asyncio
class TestListLicensesByOwnerHandler:
    """Tests for ListLicensesByOwnerHandler."""

    async def test_lists_owner_licenses_with_usage(
        self, make_license, license_repository, activation_repository, allow_list
    ):
        """Test masked keys and activation counts, exempt domains excluded."""
        plaintext, license = await make_license(max_activations=3, owner_id="owner-7")
        await make_license(owner_id="someone-else")
        for domain in ("example.com", "shop.example.org", "dev.local"):
            activation_repository.activations.append(
                Activation.create(license_id=license.id, domain=domain, ip_hash="0" * 64)
            )

        handler = ListLicensesByOwnerHandler(
            license_repository, activation_repository, allow_list
        )
        result = await handler.handle(ListLicensesByOwnerQuery(owner_id="owner-7"))

        assert len(result) == 1
        dto = result[0]
        assert dto.id == license.id
        assert dto.key_mask.startswith("****-****-****-")
        assert plaintext not in dto.key_mask
        assert dto.effective_status == "active"
        assert dto.active_activations == 3
        assert dto.remaining_activations == 1
