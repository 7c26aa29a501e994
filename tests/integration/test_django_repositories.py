"""
Integration tests for the Django repositories.
"""

import threading
import time
import uuid

import pytest
from asgiref.sync import async_to_sync
from django.db import OperationalError, connection, transaction

from activations.domain.domain_name import DomainAllowList
from activations.domain.services import ActivationLedger, CapacityPolicy, ClaimOutcome
from activations.infrastructure.models import Activation as ActivationModel
from activations.infrastructure.repositories.django_activation_repository import (
    DjangoActivationRepository,
)
from core.domain.exceptions import TransientStorageError
from core.domain.value_objects import LicenseStatus
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository
from tests.fakes import TEST_IP_SALT

IP_HASH = "0" * 64

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


@pytest.fixture
def licenses():
    """Fixture for DjangoLicenseRepository."""
    return DjangoLicenseRepository()


@pytest.fixture
def activations():
    """Fixture for DjangoActivationRepository."""
    return DjangoActivationRepository()


def _policy(max_activations):
    return CapacityPolicy(max_activations=max_activations, allow_list=DomainAllowList())


class TestDjangoLicenseRepository:
    """Tests for DjangoLicenseRepository."""

    def test_save_and_find(self, issued_license, licenses):
        """Test a created license is found by id, key hash and owner."""
        created = issued_license(owner_id="owner-9")

        by_id = async_to_sync(licenses.find_by_id)(created.license_id)

        assert by_id is not None
        assert by_id.status == LicenseStatus.ACTIVE
        assert by_id.max_activations == 3
        assert async_to_sync(licenses.find_by_key_hash)(by_id.key_hash).id == by_id.id
        assert async_to_sync(licenses.key_hash_exists)(by_id.key_hash) is True
        assert [lic.id for lic in async_to_sync(licenses.find_by_owner)("owner-9")] == [by_id.id]

    def test_missing_license(self, licenses):
        """Test unknown ids and hashes return nothing."""
        assert async_to_sync(licenses.find_by_id)(uuid.uuid4()) is None
        assert async_to_sync(licenses.find_by_key_hash)("f" * 64) is None
        assert async_to_sync(licenses.key_hash_exists)("f" * 64) is False

    def test_status_change_persisted(self, issued_license, licenses):
        """Test saving a transitioned license updates the row."""
        created = issued_license()
        license = async_to_sync(licenses.find_by_id)(created.license_id)

        async_to_sync(licenses.save)(license.suspend())

        assert async_to_sync(licenses.find_by_id)(license.id).status == LicenseStatus.SUSPENDED


class TestDjangoActivationRepository:
    """Tests for DjangoActivationRepository."""

    def test_claim_creates_then_refreshes(self, issued_license, activations):
        """Test the first claim inserts and the second refreshes the same row."""
        license_id = issued_license().license_id

        created = async_to_sync(activations.claim)(license_id, "example.com", _policy(2), IP_HASH)
        refreshed = async_to_sync(activations.claim)(
            license_id, "example.com", _policy(2), IP_HASH
        )

        assert created.outcome == ClaimOutcome.CREATED
        assert created.used_activations == 1
        assert refreshed.outcome == ClaimOutcome.REFRESHED
        assert refreshed.activation.id == created.activation.id
        assert refreshed.activation.validation_count == 1
        assert ActivationModel.objects.filter(license_id=license_id).count() == 1

    def test_claim_respects_limit(self, issued_license, activations):
        """Test claims beyond the limit insert nothing."""
        license_id = issued_license(max_activations=1).license_id
        async_to_sync(activations.claim)(license_id, "a.com", _policy(1), IP_HASH)

        result = async_to_sync(activations.claim)(license_id, "b.com", _policy(1), IP_HASH)

        assert result.outcome == ClaimOutcome.LIMIT_REACHED
        assert result.activation is None
        assert result.used_activations == 1
        active = async_to_sync(activations.find_active_by_license)(license_id)
        assert [activation.domain for activation in active] == ["a.com"]

    def test_touch(self, issued_license, activations):
        """Test touch refreshes active rows only."""
        license_id = issued_license().license_id
        async_to_sync(activations.claim)(license_id, "example.com", _policy(3), IP_HASH)

        touched = async_to_sync(activations.touch)(license_id, "example.com", "1" * 64)

        assert touched.validation_count == 1
        assert touched.ip_hash == "1" * 64
        assert async_to_sync(activations.touch)(license_id, "other.com", IP_HASH) is None

    def test_deactivate_keeps_history(self, issued_license, activations):
        """Test deactivation is a soft delete that frees the domain."""
        license_id = issued_license(max_activations=1).license_id
        async_to_sync(activations.claim)(license_id, "a.com", _policy(1), IP_HASH)

        deactivated = async_to_sync(activations.deactivate)(license_id, "a.com", "moved")
        again = async_to_sync(activations.deactivate)(license_id, "a.com", "moved")
        moved = async_to_sync(activations.claim)(license_id, "b.com", _policy(1), IP_HASH)

        assert deactivated.is_active is False
        assert deactivated.deactivated_reason == "moved"
        assert again is None
        assert moved.outcome == ClaimOutcome.CREATED
        assert len(async_to_sync(activations.find_active_by_license)(license_id)) == 1
        assert len(async_to_sync(activations.find_all_by_license)(license_id)) == 2


class SlowActivationRepository(DjangoActivationRepository):
    """Repository whose claims finish only after the storage timeout."""

    delay = 0.3

    def _claim(self, *args, **kwargs):
        time.sleep(self.delay)
        return super()._claim(*args, **kwargs)


class AbortedActivationRepository(DjangoActivationRepository):
    """Repository whose claims are aborted by the server after inserting."""

    def _claim(self, *args, **kwargs):
        with transaction.atomic():
            super()._claim(*args, **kwargs)
            time.sleep(0.1)
            raise OperationalError("canceling statement due to statement timeout")


def _ledger(repository):
    return ActivationLedger(
        repository=repository, allow_list=DomainAllowList(), ip_salt=TEST_IP_SALT
    )


def _license(license_id):
    return async_to_sync(DjangoLicenseRepository().find_by_id)(license_id)


class TestActivationStorageTimeouts:
    """Tests for claims that run past the storage timeout."""

    def test_claim_outliving_timeout_reports_commit(self, issued_license):
        """Test a claim committed after the timeout is reported as a success."""
        license = _license(issued_license(max_activations=1).license_id)
        ledger = _ledger(SlowActivationRepository(timeout=0.05))

        result = async_to_sync(ledger.activate)(license, "example.com", "203.0.113.9")

        active = ActivationModel.objects.filter(license_id=license.id, is_active=True)
        assert result.success is True
        assert result.created is True
        assert [model.domain for model in active] == ["example.com"]
        assert result.activation.id == active.get().id

    def test_claim_aborted_after_timeout_commits_nothing(self, issued_license):
        """Test a claim the server aborts is reported as failed with no row left."""
        license = _license(issued_license(max_activations=1).license_id)
        ledger = _ledger(AbortedActivationRepository(timeout=0.05))

        with pytest.raises(TransientStorageError):
            async_to_sync(ledger.activate)(license, "example.com", "203.0.113.9")

        assert not ActivationModel.objects.filter(license_id=license.id).exists()

    def test_deactivate_outliving_timeout_reports_commit(self, issued_license, monkeypatch):
        """Test a deactivation committed after the timeout is reported as done."""
        license_id = issued_license().license_id
        activations = DjangoActivationRepository(timeout=0.05)
        async_to_sync(activations.claim)(license_id, "example.com", _policy(3), IP_HASH)
        real_save = ActivationModel.save

        def slow_save(self, *args, **kwargs):
            time.sleep(0.3)
            return real_save(self, *args, **kwargs)

        monkeypatch.setattr(ActivationModel, "save", slow_save)

        deactivated = async_to_sync(activations.deactivate)(license_id, "example.com", "moved")

        assert deactivated.is_active is False
        assert not ActivationModel.objects.filter(license_id=license_id, is_active=True).exists()


class TestActivationInsertRace:
    """Tests for claims losing the insert race on the one-active-row constraint."""

    @staticmethod
    def _racing_create(monkeypatch, collisions):
        real_create = ActivationModel.objects.create
        calls = []

        def create(**kwargs):
            calls.append(kwargs["domain"])
            if len(calls) <= collisions:
                # Another worker inserted the same domain first.
                real_create(**{**kwargs, "id": uuid.uuid4()})
            return real_create(**kwargs)

        monkeypatch.setattr(ActivationModel.objects, "create", create)
        return calls

    def test_lost_race_is_transient(self, issued_license, activations, monkeypatch):
        """Test a constraint violation surfaces as a transient failure with nothing kept."""
        license_id = issued_license().license_id
        self._racing_create(monkeypatch, collisions=1)

        with pytest.raises(TransientStorageError):
            async_to_sync(activations.claim)(license_id, "example.com", _policy(3), IP_HASH)

        assert not ActivationModel.objects.filter(license_id=license_id).exists()

    def test_ledger_retries_lost_race_once(self, issued_license, activations, monkeypatch):
        """Test the ledger retries a lost race and the retry succeeds."""
        license = _license(issued_license().license_id)
        calls = self._racing_create(monkeypatch, collisions=1)

        result = async_to_sync(_ledger(activations).activate)(license, "example.com", "203.0.113.9")

        assert result.success is True
        assert calls == ["example.com", "example.com"]
        assert ActivationModel.objects.filter(license_id=license.id, is_active=True).count() == 1

    def test_ledger_gives_up_after_one_retry(self, issued_license, activations, monkeypatch):
        """Test repeated collisions are surfaced after a single retry."""
        license = _license(issued_license().license_id)
        calls = self._racing_create(monkeypatch, collisions=5)

        with pytest.raises(TransientStorageError):
            async_to_sync(_ledger(activations).activate)(license, "example.com", "203.0.113.9")

        assert len(calls) == 2
        assert not ActivationModel.objects.filter(license_id=license.id).exists()


@pytest.mark.django_db(transaction=True)
class TestConcurrentClaims:
    """Tests for simultaneous activations of one license from many workers."""

    max_activations = 3
    extra = 5

    def _activate_concurrently(self, license):
        domains = [f"site{i}.example.org" for i in range(self.max_activations + self.extra)]
        barrier = threading.Barrier(len(domains))
        outcomes = []
        lock = threading.Lock()

        def activate(domain):
            ledger = _ledger(DjangoActivationRepository())
            try:
                barrier.wait()
                try:
                    result = async_to_sync(ledger.activate)(license, domain, "203.0.113.9")
                    outcome = "activated" if result.success else result.reason.value
                except TransientStorageError:
                    outcome = "transient"
                with lock:
                    outcomes.append(outcome)
            finally:
                connection.close()

        threads = [threading.Thread(target=activate, args=(d,)) for d in domains]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes

    def test_never_over_admits(self, issued_license):
        """Test concurrent claims never exceed the activation limit."""
        license = _license(issued_license(max_activations=self.max_activations).license_id)

        outcomes = self._activate_concurrently(license)

        active = ActivationModel.objects.filter(license_id=license.id, is_active=True).count()
        assert len(outcomes) == self.max_activations + self.extra
        assert set(outcomes) <= {"activated", "activation_limit", "transient"}
        assert outcomes.count("activated") == active
        assert active <= self.max_activations

    def test_exactly_fills_capacity_with_row_locks(self, issued_license):
        """Test row-locking backends admit exactly the limit and deny the rest."""
        if connection.vendor != "postgresql":
            pytest.skip("needs SELECT ... FOR UPDATE")
        license = _license(issued_license(max_activations=self.max_activations).license_id)

        outcomes = self._activate_concurrently(license)

        assert outcomes.count("activated") == self.max_activations
        assert outcomes.count("activation_limit") == self.extra
        active = ActivationModel.objects.filter(license_id=license.id, is_active=True).count()
        assert active == self.max_activations
