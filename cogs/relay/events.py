"""
Relay Events Cog

Turns Discord message events into ``PostedMessage`` records for the RelayService.
"""

import discord
from discord.ext import commands

from services.relay_service import RelayService
from utils.logging import get_logger
from utils.types import ChannelKind, PostedMessage

logger = get_logger(__name__)


def channel_kind(channel: object) -> ChannelKind:
    if isinstance(channel, discord.VoiceChannel):
        return ChannelKind.VOICE
    if isinstance(channel, discord.Thread):
        return ChannelKind.THREAD
    if isinstance(channel, discord.TextChannel):
        return ChannelKind.TEXT
    return ChannelKind.OTHER


def to_posted_message(message: discord.Message) -> PostedMessage:
    """Reduce a discord.py message to what the relay needs."""
    author = message.author
    voice_channel_id = None
    if isinstance(author, discord.Member) and author.voice and author.voice.channel:
        voice_channel_id = author.voice.channel.id

    kind = channel_kind(message.channel)
    return PostedMessage(
        message_id=message.id,
        guild_id=message.guild.id if message.guild else None,
        channel_id=message.channel.id,
        channel_kind=kind,
        content=message.content,
        author_id=author.id,
        author_display_name=author.display_name,
        author_avatar_url=author.display_avatar.url,
        author_is_bot=author.bot,
        webhook_id=message.webhook_id,
        parent_id=getattr(message.channel, "parent_id", None)
        if kind is ChannelKind.THREAD
        else None,
        author_voice_channel_id=voice_channel_id,
    )


class RelayEvents(commands.Cog):
    """Handles message events for the voice/archive relay."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @property
    def relay(self) -> RelayService:
        services = getattr(self.bot, "services", None)
        if services is None:
            raise RuntimeError("Bot services not initialized")
        return services.relay

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        # Cheap loop guard before building anything
        if message.webhook_id is not None or message.author.bot:
            return
        try:
            await self.relay.on_message_posted(to_posted_message(message))
        except Exception as e:
            logger.exception(
                "Error relaying message %s in %s",
                message.id,
                message.channel,
                exc_info=e,
            )


async def setup(bot: commands.Bot) -> None:
    """Set up the Relay Events cog."""
    await bot.add_cog(RelayEvents(bot))
