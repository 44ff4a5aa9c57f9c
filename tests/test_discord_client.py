"""Tests for src/discord/client.py — Discord guild counts client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

import src.discord.client as discord_mod
from src.discord.client import (
    DiscordAPIError,
    DiscordClient,
    GuildForbiddenError,
    GuildNotFoundError,
    InvalidGuildIdError,
    is_snowflake,
)
from src.discord.models import GuildCounts, MemberStats

GUILD_PAYLOAD = {
    "id": "123456789",
    "name": "Test Guild",
    "approximate_member_count": 1200,
    "approximate_presence_count": 345,
}


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.is_closed = False
    return client


@pytest.fixture
def discord(mock_client):
    c = DiscordClient()
    c._client = mock_client
    return c


class TestGetMemberStats:

    async def test_success(self, discord, mock_client, override_settings):
        override_settings(DISCORD_API_BASE="https://discord.com/api/v10")
        mock_client.get.return_value = make_response(payload=GUILD_PAYLOAD)

        stats = await discord.get_member_stats("123456789", "bot-token")

        assert stats == MemberStats(total_members=1200, online_members=345)
        call = mock_client.get.call_args
        assert call.args[0] == "https://discord.com/api/v10/guilds/123456789"
        assert call.kwargs["params"] == {"with_counts": "true"}
        assert call.kwargs["headers"]["Authorization"] == "Bot bot-token"

    async def test_not_found(self, discord, mock_client):
        mock_client.get.return_value = make_response(status_code=404)
        with pytest.raises(GuildNotFoundError) as exc_info:
            await discord.get_member_stats("1", "t")
        assert exc_info.value.status_code == 404

    async def test_forbidden(self, discord, mock_client):
        mock_client.get.return_value = make_response(status_code=403)
        with pytest.raises(GuildForbiddenError) as exc_info:
            await discord.get_member_stats("1", "t")
        assert exc_info.value.status_code == 403

    async def test_other_status(self, discord, mock_client):
        mock_client.get.return_value = make_response(status_code=502)
        with pytest.raises(DiscordAPIError) as exc_info:
            await discord.get_member_stats("1", "t")
        assert exc_info.value.status_code == 500

    async def test_connect_error(self, discord, mock_client):
        mock_client.get.side_effect = httpx.ConnectError("Connection refused")
        with pytest.raises(DiscordAPIError):
            await discord.get_member_stats("1", "t")

    async def test_malformed_payload(self, discord, mock_client):
        mock_client.get.return_value = make_response(payload={"id": "1"})
        with pytest.raises(DiscordAPIError, match="Malformed"):
            await discord.get_member_stats("1", "t")

    @pytest.mark.parametrize("guild_id", ["../users/@me", "..", "1/../2", ""])
    async def test_non_snowflake_never_sent(self, discord, mock_client, guild_id):
        with pytest.raises(InvalidGuildIdError) as exc_info:
            await discord.get_member_stats(guild_id, "bot-token")
        assert exc_info.value.status_code == 400
        mock_client.get.assert_not_called()


class TestIsSnowflake:

    def test_accepts_decimal_ids(self):
        assert is_snowflake("123456789012345678")

    @pytest.mark.parametrize("value", ["", "..", "12.3", "-1", "1 2", "\u0663", "1" * 21])
    def test_rejects_everything_else(self, value):
        assert not is_snowflake(value)


class TestModels:

    def test_guild_from_payload(self):
        guild = GuildCounts.from_payload(GUILD_PAYLOAD)
        assert guild.name == "Test Guild"
        assert guild.approximate_member_count == 1200

    def test_member_stats_json_shape(self):
        stats = MemberStats(total_members=10, online_members=4)
        assert stats.to_dict() == {"totalMembers": 10, "onlineMembers": 4}


class TestSingleton:

    def test_get_discord_client_reuses_instance(self):
        assert discord_mod.get_discord_client() is discord_mod.get_discord_client()

    async def test_close_resets(self, mock_client):
        client = discord_mod.get_discord_client()
        client._client = mock_client
        await discord_mod.close_discord_client()
        mock_client.aclose.assert_awaited_once()
        assert discord_mod._discord_client is None
