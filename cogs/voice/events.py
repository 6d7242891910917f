"""
Voice Events Cog

Turns Discord voice state events into snapshots for the LifecycleService.
"""

import discord
from discord.ext import commands

from services.lifecycle_service import LifecycleService
from utils.logging import get_logger
from utils.types import VoiceStateSnapshot

logger = get_logger(__name__)


def snapshot(
    member: discord.Member, state: discord.VoiceState
) -> VoiceStateSnapshot:
    """Reduce one side of a voice state update to ids."""
    return VoiceStateSnapshot(
        guild_id=member.guild.id,
        member_id=member.id,
        channel_id=state.channel.id if state.channel is not None else None,
        member_display_name=member.display_name,
    )


class VoiceEvents(commands.Cog):
    """Handles voice state change events."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @property
    def lifecycle(self) -> LifecycleService:
        """Get the lifecycle service from the bot's service container."""
        services = getattr(self.bot, "services", None)
        if services is None:
            raise RuntimeError("Bot services not initialized")
        return services.lifecycle

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Handle voice state changes for join-to-create and cleanup."""
        if member.bot:
            return
        try:
            await self.lifecycle.on_voice_state_change(
                snapshot(member, before), snapshot(member, after)
            )
        except Exception as e:
            logger.exception(
                f"Error handling voice state update for {member} "
                f"(before: {before.channel}, after: {after.channel}): {e}"
            )

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        """Stop tracking voice channels deleted by someone else."""
        if not isinstance(channel, discord.VoiceChannel):
            return

        try:
            self.lifecycle.forget_channel(channel.id)
        except Exception as e:
            logger.exception("Error handling channel deletion for %s", channel, exc_info=e)


async def setup(bot: commands.Bot) -> None:
    """Set up the Voice Events cog."""
    await bot.add_cog(VoiceEvents(bot))
