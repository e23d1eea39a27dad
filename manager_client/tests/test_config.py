"""
Unit tests for client configuration and logging setup.
"""

import httpx
import pytest

from manager_client.app.client import ManagerClient
from manager_client.shared.config import ManagerClientConfig, get_config
from manager_client.shared.errors import ManagerClientException, UnexpectedStatusError
from manager_client.shared.logging import configure_logging, get_logger


class TestManagerClientConfig:
    """Test cases for ManagerClientConfig."""

    def test_defaults(self, monkeypatch):
        for name in ("JRM_MANAGER_URL", "JRM_ACCESS_TOKEN", "JRM_CACHE_ENABLED"):
            monkeypatch.delenv(name, raising=False)

        config = ManagerClientConfig(_env_file=None)

        assert config.manager_url == "http://localhost:8080"
        assert config.access_token is None
        assert config.cache_enabled is True
        assert config.cache_max_entries == 256

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("JRM_MANAGER_URL", "https://manager.example.com")
        monkeypatch.setenv("JRM_ACCESS_TOKEN", "env-token")
        monkeypatch.setenv("JRM_CACHE_ENABLED", "false")
        monkeypatch.setenv("JRM_TIMEOUT_SECONDS", "2.5")

        config = get_config(_env_file=None)

        assert config.manager_url == "https://manager.example.com"
        assert config.access_token == "env-token"
        assert config.cache_enabled is False
        assert config.timeout_seconds == 2.5

    @pytest.mark.asyncio
    async def test_from_config_uses_access_token(self):
        """Test a client built from settings sends the configured token."""
        def handler(request):
            assert request.headers["Authorization"] == "Bearer config-token"
            assert str(request.url) == "https://manager.example.com/rules/r-1"
            return httpx.Response(404)

        config = ManagerClientConfig(
            _env_file=None,
            manager_url="https://manager.example.com",
            access_token="config-token",
            cache_max_entries=4,
        )
        client = ManagerClient.from_config(config, transport=httpx.MockTransport(handler))

        assert await client.get_rule("r-1") is None
        assert client.cache.storage.max_entries == 4


class TestErrorsAndLogging:
    """Test cases for the shared error and logging helpers."""

    def test_unexpected_status_details(self):
        error = UnexpectedStatusError(503, "unavailable", details={"url": "https://manager.example.com/ruleset"})

        assert isinstance(error, ManagerClientException)
        assert error.to_dict() == {
            "code": "UNEXPECTED_STATUS",
            "message": "Manager responded with unexpected status 503",
            "details": {"status_code": 503, "body": "unavailable", "url": "https://manager.example.com/ruleset"},
        }

    def test_configure_logging(self):
        configure_logging("manager_client", "debug")
        logger = get_logger("manager_client.test")

        logger.debug("Configured", check=True)
