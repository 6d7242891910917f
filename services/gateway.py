"""
Capability interface the lifecycle and relay services use to talk to Discord.

The services only ever call these methods, so tests can swap in a fake and the
discord.py implementation (``helpers.discord_api.DiscordGateway``) stays the
single place that knows about REST calls, rate limits and error translation.

Contract shared by all implementations:
    - Operations on a channel that no longer exists return ``None``/``False``
      instead of raising.
    - Configuration problems (missing or wrong-type category/archive channel)
      raise ``utils.errors.ConfigError``.
    - Any other failure raises ``utils.errors.GatewayError``.
"""

from abc import ABC, abstractmethod
from typing import Any

from utils.types import RelayIdentity


class Gateway(ABC):
    """Abstract collaborator operations."""

    # -- voice channel lifecycle -------------------------------------------

    @abstractmethod
    async def fetch_category(self, category_id: int) -> Any:
        """Return the category channel for ``category_id``."""

    @abstractmethod
    async def create_voice_channel(
        self,
        category: Any,
        name: str,
        *,
        owner_id: int | None = None,
        reason: str | None = None,
    ) -> Any:
        """Create a voice channel under ``category``; ``owner_id`` gets owner overwrites."""

    @abstractmethod
    async def move_member(self, guild_id: int, member_id: int, channel: Any) -> None:
        """Move a connected member into ``channel``."""

    @abstractmethod
    async def set_channel_user_limit(self, channel: Any, limit: int | None) -> bool:
        """Freeze (``0``) or unfreeze (``None``) a channel; other limits raise ValueError."""

    @abstractmethod
    async def delete_channel(self, channel: Any, *, reason: str | None = None) -> bool:
        """Delete ``channel``; ``False`` if it was already gone."""

    @abstractmethod
    async def fetch_channel(self, channel_id: int) -> Any | None:
        """Return live state for ``channel_id`` or ``None`` if it no longer exists."""

    # -- roles ---------------------------------------------------------------

    @abstractmethod
    async def add_member_role(self, guild_id: int, member_id: int, role_id: int) -> None:
        """Give a member a role."""

    @abstractmethod
    async def remove_member_role(self, guild_id: int, member_id: int, role_id: int) -> None:
        """Take a role away from a member."""

    # -- relay ---------------------------------------------------------------

    @abstractmethod
    async def fetch_archive_channel(self, channel_id: int) -> Any:
        """Return the text channel that hosts archive threads."""

    @abstractmethod
    async def create_thread(self, channel: Any, name: str, auto_archive_minutes: int) -> Any:
        """Create a public thread in ``channel``."""

    @abstractmethod
    async def fetch_or_create_webhook(self, channel: Any) -> Any:
        """Return a webhook able to post into ``channel``."""

    @abstractmethod
    async def send_as_webhook(
        self,
        webhook: Any,
        content: str,
        identity: RelayIdentity,
        *,
        thread_id: int | None = None,
    ) -> None:
        """Post ``content`` through ``webhook`` under ``identity``, optionally into a thread."""
