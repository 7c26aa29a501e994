"""
Integration tests for the license API endpoints.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

ACTIVATE_URL = "/api/v1/license/activate"
VALIDATE_URL = "/api/v1/license/validate"
DEACTIVATE_URL = "/api/v1/license/deactivate"

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


def _post(api_client, url, **data):
    return api_client.post(url, data, format="json")


class TestActivateEndpoint:
    """Tests for POST /api/v1/license/activate."""

    def test_activate(self, api_client, issued_license):
        """Test a valid key activates the normalized domain."""
        created = issued_license(max_activations=2)

        response = _post(
            api_client,
            ACTIVATE_URL,
            license_key=created.license_key,
            domain="https://www.Example.com/wp-admin",
        )

        assert response.status_code == 200
        assert response.data["success"] is True
        assert response.data["status"] == "active"
        assert response.data["remaining_activations"] == 1
        assert response.data["activation_id"] is not None

    def test_limit_is_a_business_denial(self, api_client, issued_license):
        """Test a full license answers 200 with the limit reason."""
        created = issued_license(max_activations=1)
        _post(api_client, ACTIVATE_URL, license_key=created.license_key, domain="a.com")

        response = _post(api_client, ACTIVATE_URL, license_key=created.license_key, domain="b.com")

        assert response.status_code == 200
        assert response.data["success"] is False
        assert response.data["reason"] == "activation_limit"
        assert response.data["remaining_activations"] == 0

    def test_developer_domains_are_free(self, api_client, issued_license):
        """Test local and configured developer domains do not consume seats."""
        created = issued_license(max_activations=1)
        for domain in ("example.com", "localhost", "staging.example.com"):
            response = _post(
                api_client, ACTIVATE_URL, license_key=created.license_key, domain=domain
            )
            assert response.data["success"] is True

    def test_expired_license(self, api_client, issued_license):
        """Test expired licenses are denied with their status."""
        created = issued_license(expires_at=timezone.now() - timedelta(days=30))

        response = _post(
            api_client, ACTIVATE_URL, license_key=created.license_key, domain="example.com"
        )

        assert response.status_code == 200
        assert response.data["reason"] == "expired"
        assert response.data["status"] == "expired"

    def test_unknown_key(self, api_client):
        """Test unknown keys answer 200 with not_found."""
        response = _post(
            api_client,
            ACTIVATE_URL,
            license_key="FFFFFFFF-FFFFFFFF-FFFFFFFF-FFFFFFFF",
            domain="example.com",
        )

        assert response.status_code == 200
        assert response.data["success"] is False
        assert response.data["reason"] == "not_found"

    def test_missing_fields(self, api_client):
        """Test missing fields are rejected with the validation envelope."""
        response = _post(api_client, ACTIVATE_URL, domain="example.com")

        assert response.status_code == 400
        assert response.data["error"]["code"] == "VALIDATION_ERROR"
        assert "license_key" in response.data["error"]["details"]

    def test_malformed_key(self, api_client):
        """Test malformed keys are rejected as bad requests."""
        response = _post(api_client, ACTIVATE_URL, license_key="abc", domain="example.com")

        assert response.status_code == 400
        assert response.data["error"]["code"] == "INVALID_LICENSE_KEY"

    def test_invalid_domain(self, api_client, issued_license):
        """Test unparseable domains are rejected as bad requests."""
        created = issued_license()

        response = _post(
            api_client, ACTIVATE_URL, license_key=created.license_key, domain="not a domain"
        )

        assert response.status_code == 400
        assert response.data["error"]["code"] == "INVALID_DOMAIN"


class TestValidateEndpoint:
    """Tests for POST /api/v1/license/validate."""

    def test_heartbeat(self, api_client, issued_license):
        """Test heartbeats from an activated domain report the license status."""
        created = issued_license()
        _post(api_client, ACTIVATE_URL, license_key=created.license_key, domain="example.com")

        response = _post(
            api_client, VALIDATE_URL, license_key=created.license_key, domain="example.com"
        )

        assert response.status_code == 200
        assert response.data["success"] is True
        assert response.data["status"] == "active"
        assert response.data["grace_until"] is not None

    def test_grace_period(self, api_client, issued_license):
        """Test heartbeats during grace succeed with the grace status."""
        created = issued_license(expires_at=timezone.now() - timedelta(days=1))
        _post(api_client, ACTIVATE_URL, license_key=created.license_key, domain="example.com")

        response = _post(
            api_client, VALIDATE_URL, license_key=created.license_key, domain="example.com"
        )

        assert response.data["success"] is True
        assert response.data["status"] == "grace"

    def test_domain_not_activated(self, api_client, issued_license):
        """Test heartbeats from other domains are denied."""
        created = issued_license()

        response = _post(
            api_client, VALIDATE_URL, license_key=created.license_key, domain="example.com"
        )

        assert response.status_code == 200
        assert response.data["success"] is False
        assert response.data["reason"] == "domain_not_activated"


class TestDeactivateEndpoint:
    """Tests for POST /api/v1/license/deactivate."""

    def test_deactivate_frees_seat(self, api_client, issued_license):
        """Test a released seat can be taken by another domain."""
        created = issued_license(max_activations=1)
        _post(api_client, ACTIVATE_URL, license_key=created.license_key, domain="a.com")

        released = _post(
            api_client,
            DEACTIVATE_URL,
            license_key=created.license_key,
            domain="a.com",
            reason="moved",
        )
        moved = _post(api_client, ACTIVATE_URL, license_key=created.license_key, domain="b.com")

        assert released.status_code == 200
        assert released.data["success"] is True
        assert released.data["remaining_activations"] == 1
        assert moved.data["success"] is True

    def test_deactivate_unknown_domain(self, api_client, issued_license):
        """Test releasing a domain that is not active reports failure."""
        created = issued_license()

        response = _post(
            api_client, DEACTIVATE_URL, license_key=created.license_key, domain="example.com"
        )

        assert response.status_code == 200
        assert response.data["success"] is False
        assert response.data["reason"] == "domain_not_activated"
