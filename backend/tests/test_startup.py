"""Tests for startup configuration checks."""

from unittest.mock import AsyncMock, patch

import pytest

from dailyquest.exceptions import ExternalServiceError
from dailyquest.main import build_identity_client, build_reward_client
from dailyquest.services.identity_client import IdentityClient


class TestRewardClientStartup:
    def test_missing_reward_url_is_fatal(self):
        with patch("dailyquest.main.settings") as mock_settings:
            mock_settings.reward_api_url = None

            with pytest.raises(RuntimeError) as exc_info:
                build_reward_client()

            assert "REWARD_API_URL" in str(exc_info.value)

    def test_configured_reward_url(self):
        with patch("dailyquest.main.settings") as mock_settings:
            mock_settings.reward_api_url = "https://rewards.example"
            mock_settings.reward_api_key = "k"

            client = build_reward_client()

            assert client.base_url == "https://rewards.example"


class TestIdentityClientStartup:
    @pytest.mark.asyncio
    async def test_unconfigured_identity_is_disabled(self):
        with patch("dailyquest.main.settings") as mock_settings:
            mock_settings.identity_api_url = None
            assert await build_identity_client() is None

    @pytest.mark.asyncio
    async def test_project_ensured_at_boot(self):
        with patch("dailyquest.main.settings") as mock_settings:
            mock_settings.identity_api_url = "https://id.example"
            mock_settings.identity_api_key = None
            mock_settings.identity_project_key = "proj-1"

            with patch.object(
                IdentityClient, "ensure_project", new_callable=AsyncMock
            ) as ensure:
                client = await build_identity_client()

            ensure.assert_awaited_once()
            assert isinstance(client, IdentityClient)

    @pytest.mark.asyncio
    async def test_unreachable_identity_is_fatal(self):
        with patch("dailyquest.main.settings") as mock_settings:
            mock_settings.identity_api_url = "https://id.example"
            mock_settings.identity_api_key = None
            mock_settings.identity_project_key = None

            with patch.object(
                IdentityClient,
                "ensure_project",
                new_callable=AsyncMock,
                side_effect=ExternalServiceError("Identity service", "refused"),
            ):
                with pytest.raises(RuntimeError) as exc_info:
                    await build_identity_client()

            assert "Identity project initialization failed" in str(exc_info.value)
