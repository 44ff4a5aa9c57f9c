"""Discord REST client for guild member counts."""

import httpx

from src.config.settings import get_settings
from src.discord.models import GuildCounts, MemberStats


def is_snowflake(value: str) -> bool:
    """Discord IDs are unsigned 64-bit integers rendered in decimal."""
    return value.isascii() and value.isdigit() and len(value) <= 20


class DiscordAPIError(Exception):
    """Discord could not be reached or returned an unusable response."""

    status_code = 500

    def __init__(self, message: str = "Failed to fetch Discord data"):
        super().__init__(message)
        self.message = message


class InvalidGuildIdError(DiscordAPIError):
    status_code = 400

    def __init__(self):
        super().__init__("Invalid guild ID")


class GuildNotFoundError(DiscordAPIError):
    status_code = 404

    def __init__(self):
        super().__init__("Guild not found or bot not in server")


class GuildForbiddenError(DiscordAPIError):
    status_code = 403

    def __init__(self):
        super().__init__("Bot does not have permission to access this server")


class DiscordClient:
    """Fetches approximate member and presence counts with a bot token."""

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
        return self._client

    async def get_member_stats(self, guild_id: str, bot_token: str) -> MemberStats:
        if not is_snowflake(guild_id):
            raise InvalidGuildIdError()

        settings = get_settings()
        url = f"{settings.discord_api_base.rstrip('/')}/guilds/{guild_id}"

        client = await self._get_client()
        try:
            response = await client.get(
                url,
                params={"with_counts": "true"},
                headers={"Authorization": f"Bot {bot_token}"},
            )
        except httpx.HTTPError as e:
            raise DiscordAPIError(f"Cannot reach Discord: {e}") from e

        if response.status_code == 404:
            raise GuildNotFoundError()
        if response.status_code == 403:
            raise GuildForbiddenError()
        if response.status_code != 200:
            raise DiscordAPIError(f"Discord returned {response.status_code}")

        try:
            guild = GuildCounts.from_payload(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise DiscordAPIError(f"Malformed guild payload: {e}") from e

        return MemberStats.from_guild(guild)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


_discord_client: DiscordClient | None = None


def get_discord_client() -> DiscordClient:
    global _discord_client
    if _discord_client is None:
        _discord_client = DiscordClient()
    return _discord_client


async def close_discord_client() -> None:
    global _discord_client
    if _discord_client is not None:
        await _discord_client.close()
        _discord_client = None
