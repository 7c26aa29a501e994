"""
Integration tests for API rate limiting.
"""

import pytest

from core.config import get_engine_config

VALIDATE_URL = "/api/v1/license/validate"
ACTIVATE_URL = "/api/v1/license/activate"
PAYLOAD = {"license_key": "FFFFFFFF-FFFFFFFF-FFFFFFFF-FFFFFFFF", "domain": "example.com"}

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


@pytest.fixture
def tight_limits(settings):
    """Allow two validate requests per minute."""
    settings.LICENSE_ENGINE = {
        **settings.LICENSE_ENGINE,
        "RATE_LIMITS": {"validate": (2, 60), "default": (60, 300)},
        "BLOCK_DURATION": 120,
    }
    get_engine_config.cache_clear()


@pytest.mark.usefixtures("tight_limits")
class TestRateLimiting:
    """Tests for RateLimitMiddleware."""

    def test_limit_exceeded(self, api_client):
        """Test the request after the limit gets 429 with Retry-After."""
        for _ in range(2):
            assert api_client.post(VALIDATE_URL, PAYLOAD, format="json").status_code == 200

        response = api_client.post(VALIDATE_URL, PAYLOAD, format="json")

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert 0 < int(response["Retry-After"]) <= 121

    def test_limits_are_per_action(self, api_client):
        """Test a blocked action leaves other actions usable."""
        for _ in range(3):
            api_client.post(VALIDATE_URL, PAYLOAD, format="json")

        response = api_client.post(ACTIVATE_URL, PAYLOAD, format="json")

        assert response.status_code == 200

    def test_limits_are_per_client(self, api_client):
        """Test one client's block does not affect another IP."""
        for _ in range(3):
            api_client.post(VALIDATE_URL, PAYLOAD, format="json")

        response = api_client.post(
            VALIDATE_URL, PAYLOAD, format="json", REMOTE_ADDR="198.51.100.7"
        )

        assert response.status_code == 200

    def test_health_not_limited(self, api_client):
        """Test endpoints outside the API are never limited."""
        for _ in range(5):
            assert api_client.get("/health/").status_code == 200
