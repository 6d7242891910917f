"""
Centralized module for all Discord API calls.

``DiscordGateway`` implements ``services.gateway.Gateway`` on top of discord.py.
Every REST call passes through one shared ``AsyncLimiter`` and one error
translation point: ``discord.NotFound`` means the target vanished and is
reported as ``None``/``False``, any other ``discord.HTTPException`` becomes a
``GatewayError``. Nothing here retries.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import discord
from aiolimiter import AsyncLimiter

from config.settings import RelaySettings
from services.gateway import Gateway
from utils.errors import ConfigError, GatewayError
from utils.logging import get_logger
from utils.types import RelayIdentity

logger = get_logger(__name__)

# Discord caps webhook usernames at 80 characters and message content at 2000
MAX_WEBHOOK_USERNAME = 80
MAX_MESSAGE_LENGTH = 2000

OWNER_OVERWRITE = discord.PermissionOverwrite(
    manage_channels=True, connect=True, move_members=True
)


class DiscordGateway(Gateway):
    """discord.py implementation of the collaborator interface."""

    def __init__(
        self,
        bot: discord.Client,
        relay_settings: RelaySettings,
        *,
        limiter: AsyncLimiter | None = None,
    ) -> None:
        self.bot = bot
        self.relay_settings = relay_settings
        self._limiter = limiter or AsyncLimiter(max_rate=45, time_period=1)
        self._webhooks_by_channel: dict[int, discord.Webhook] = {}

    @asynccontextmanager
    async def _api_call(self, action: str) -> AsyncIterator[None]:
        async with self._limiter:
            try:
                yield
            except discord.NotFound:
                raise
            except discord.HTTPException as e:
                raise GatewayError(f"{action} failed: {e}") from e

    def _get_guild(self, guild_id: int) -> discord.Guild:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            raise GatewayError(f"Guild {guild_id} is not available")
        return guild

    async def _get_member(self, guild_id: int, member_id: int) -> discord.Member:
        guild = self._get_guild(guild_id)
        member = guild.get_member(member_id)
        if member is not None:
            return member
        try:
            async with self._api_call(f"fetch member {member_id}"):
                return await guild.fetch_member(member_id)
        except discord.NotFound as e:
            raise GatewayError(f"Member {member_id} is not in guild {guild_id}") from e

    async def _resolve_channel(self, channel_id: int) -> Any | None:
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            async with self._api_call(f"fetch channel {channel_id}"):
                return await self.bot.fetch_channel(channel_id)
        except discord.NotFound:
            return None

    # -- voice channel lifecycle -------------------------------------------

    async def fetch_category(self, category_id: int) -> discord.CategoryChannel:
        category = await self._resolve_channel(category_id)
        if category is None:
            raise ConfigError(f"Voice category {category_id} not found")
        if not isinstance(category, discord.CategoryChannel):
            raise ConfigError(f"Channel {category_id} is not a category")
        return category

    async def create_voice_channel(
        self,
        category: discord.CategoryChannel,
        name: str,
        *,
        owner_id: int | None = None,
        reason: str | None = None,
    ) -> discord.VoiceChannel:
        overwrites: dict[Any, discord.PermissionOverwrite] = {}
        if owner_id is not None:
            owner = category.guild.get_member(owner_id) or discord.Object(id=owner_id)
            overwrites[owner] = OWNER_OVERWRITE

        async with self._api_call(f"create voice channel in {category.id}"):
            channel = await category.create_voice_channel(
                name=name, overwrites=overwrites, reason=reason
            )
        logger.info(
            "Created voice channel '%s'",
            channel.name,
            extra={"channel_id": str(channel.id), "guild_id": str(category.guild.id)},
        )
        return channel

    async def move_member(
        self, guild_id: int, member_id: int, channel: discord.VoiceChannel
    ) -> None:
        member = await self._get_member(guild_id, member_id)
        try:
            async with self._api_call(f"move member {member_id}"):
                await member.move_to(channel)
        except discord.NotFound as e:
            raise GatewayError(
                f"Could not move member {member_id} into {channel.id}: target gone"
            ) from e

    async def set_channel_user_limit(
        self, channel: discord.VoiceChannel, limit: int | None
    ) -> bool:
        if limit not in (0, None):
            raise ValueError(f"Unsupported user limit {limit!r}; only 0 or None")
        try:
            if limit == 0:
                # Discord reads user_limit=0 as "no cap"; lock joins with an
                # @everyone overwrite instead
                overwrite = channel.overwrites_for(channel.guild.default_role)
                overwrite.connect = False
                async with self._api_call(f"freeze channel {channel.id}"):
                    await channel.set_permissions(
                        channel.guild.default_role,
                        overwrite=overwrite,
                        reason="Freezing empty channel before deletion",
                    )
            else:
                overwrite = channel.overwrites_for(channel.guild.default_role)
                overwrite.connect = None
                async with self._api_call(f"unfreeze channel {channel.id}"):
                    await channel.set_permissions(
                        channel.guild.default_role,
                        overwrite=None if overwrite.is_empty() else overwrite,
                        reason="Channel re-occupied during cleanup",
                    )
                    if channel.user_limit:
                        await channel.edit(user_limit=0)
        except discord.NotFound:
            logger.info(
                "Channel vanished while setting user limit",
                extra={"channel_id": str(channel.id)},
            )
            return False
        return True

    async def delete_channel(
        self, channel: discord.abc.GuildChannel, *, reason: str | None = None
    ) -> bool:
        try:
            async with self._api_call(f"delete channel {channel.id}"):
                await channel.delete(reason=reason)
        except discord.NotFound:
            logger.warning(
                f"Channel '{channel.id}' not found. It may have already been deleted."
            )
            return False
        self._webhooks_by_channel.pop(channel.id, None)
        logger.info(f"Deleted channel '{channel.name}' successfully.")
        return True

    async def fetch_channel(self, channel_id: int) -> Any | None:
        return await self._resolve_channel(channel_id)

    # -- roles ---------------------------------------------------------------

    async def add_member_role(self, guild_id: int, member_id: int, role_id: int) -> None:
        member = await self._get_member(guild_id, member_id)
        if member.get_role(role_id) is not None:
            return
        async with self._api_call(f"add role {role_id} to {member_id}"):
            await member.add_roles(discord.Object(id=role_id), reason="Joined voice")
        logger.debug("Added voice role", extra={"user_id": str(member_id)})

    async def remove_member_role(
        self, guild_id: int, member_id: int, role_id: int
    ) -> None:
        member = await self._get_member(guild_id, member_id)
        if member.get_role(role_id) is None:
            return
        async with self._api_call(f"remove role {role_id} from {member_id}"):
            await member.remove_roles(discord.Object(id=role_id), reason="Left voice")
        logger.debug("Removed voice role", extra={"user_id": str(member_id)})

    # -- relay ---------------------------------------------------------------

    async def fetch_archive_channel(self, channel_id: int) -> discord.TextChannel:
        channel = await self._resolve_channel(channel_id)
        if channel is None:
            raise ConfigError(f"Archive channel {channel_id} not found")
        if not isinstance(channel, discord.TextChannel):
            raise ConfigError(f"Archive channel {channel_id} is not a text channel")
        return channel

    async def create_thread(
        self, channel: discord.TextChannel, name: str, auto_archive_minutes: int
    ) -> discord.Thread:
        async with self._api_call(f"create thread in {channel.id}"):
            return await channel.create_thread(
                name=name,
                type=discord.ChannelType.public_thread,
                auto_archive_duration=auto_archive_minutes,  # type: ignore[arg-type]
            )

    async def fetch_or_create_webhook(self, channel: Any) -> discord.Webhook:
        if self.relay_settings.webhook_id is not None:
            return await self._repoint_shared_webhook(channel)

        cached = self._webhooks_by_channel.get(channel.id)
        if cached is not None:
            return cached

        name = self.relay_settings.webhook_name
        async with self._api_call(f"list webhooks in {channel.id}"):
            existing = await channel.webhooks()
        webhook = next(
            (
                wh
                for wh in existing
                if wh.name == name and wh.token and wh.user == self.bot.user
            ),
            None,
        )
        if webhook is None:
            async with self._api_call(f"create webhook in {channel.id}"):
                webhook = await channel.create_webhook(
                    name=name, reason="Voice/archive relay"
                )
            logger.info("Created relay webhook", extra={"channel_id": str(channel.id)})
        self._webhooks_by_channel[channel.id] = webhook
        return webhook

    async def _repoint_shared_webhook(self, channel: Any) -> discord.Webhook:
        webhook_id = self.relay_settings.webhook_id
        async with self._api_call("list guild webhooks"):
            webhooks = await channel.guild.webhooks()
        webhook = discord.utils.get(webhooks, id=webhook_id)
        if webhook is None:
            raise ConfigError(f"Relay webhook {webhook_id} not found")
        if webhook.channel_id != channel.id:
            async with self._api_call(f"move webhook {webhook_id} to {channel.id}"):
                webhook = await webhook.edit(channel=channel)
        return webhook

    async def send_as_webhook(
        self,
        webhook: discord.Webhook,
        content: str,
        identity: RelayIdentity,
        *,
        thread_id: int | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {
            "content": content[:MAX_MESSAGE_LENGTH],
            "username": identity.display_name[:MAX_WEBHOOK_USERNAME],
            "allowed_mentions": discord.AllowedMentions.none(),
        }
        if identity.avatar_url:
            kwargs["avatar_url"] = identity.avatar_url
        if thread_id is not None:
            kwargs["thread"] = discord.Object(id=thread_id)
        try:
            async with self._api_call(f"send via webhook {webhook.id}"):
                await webhook.send(**kwargs)
        except discord.NotFound as e:
            # Webhook or thread deleted under us; forget the cached webhook
            self._webhooks_by_channel = {
                cid: wh for cid, wh in self._webhooks_by_channel.items() if wh.id != webhook.id
            }
            raise GatewayError(f"Webhook {webhook.id} or its target no longer exists") from e
