"""
Relay between voice channel text chat and archive threads.

A message posted in a voice channel is copied into that channel's archive
thread, which is created on first use. A reply posted in the thread (or in the
archive channel itself) is copied back into the voice channel, but only if the
author is currently connected to it. Copies are sent through a webhook under
the original author's name and avatar, and anything authored by a webhook or a
bot is ignored so copies are never relayed again.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from config.settings import BotSettings
from utils.log_context import get_message_extra
from utils.types import ChannelKind, PostedMessage

from .base import BaseService
from .channel_directory import ChannelDirectory
from .gateway import Gateway
from .health_service import HealthService


def _utc_now() -> datetime:
    return datetime.now(UTC)


def format_thread_name(channel_id: int, created_at: datetime) -> str:
    """Archive thread name: the voice channel id plus an ISO-8601 UTC timestamp."""
    stamp = created_at.astimezone(UTC).isoformat(timespec="milliseconds")
    return f"Archive of {channel_id} @{stamp.replace('+00:00', 'Z')}"


class RelayService(BaseService):
    """Routes posted messages between voice channels and their archive threads."""

    def __init__(
        self,
        settings: BotSettings,
        gateway: Gateway,
        *,
        directory: ChannelDirectory | None = None,
        health: HealthService | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        super().__init__("relay")
        self.settings = settings
        self.relay = settings.relay
        self.gateway = gateway
        self.directory = directory if directory is not None else ChannelDirectory()
        self.health = health
        self._clock = clock
        # One lock per voice channel so concurrent first messages create one thread
        self._thread_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        # A shared webhook may be re-pointed between channels; resolve+send as a unit
        self._delivery_lock = asyncio.Lock()

    async def _record(self, metric: str) -> None:
        if self.health is not None:
            await self.health.record_metric(metric)

    async def on_message_posted(self, message: PostedMessage) -> bool:
        """
        Relay one posted message if it belongs to a relayed conversation.

        Failures are logged and swallowed here so one bad message cannot stop
        the ones after it.

        Returns:
            True if a copy was delivered.
        """
        if message.guild_id != self.settings.guild_id:
            return False
        if message.webhook_id is not None or message.author_is_bot:
            return False
        if not message.content.strip():
            return False

        try:
            if message.channel_kind is ChannelKind.VOICE:
                return await self._relay_voice_to_archive(message)
            if self._is_archive_message(message):
                return await self._relay_archive_to_voice(message)
        except Exception as e:
            self.logger.exception(
                "Failed to relay message", exc_info=e, extra=get_message_extra(message)
            )
            await self._record("relay_failures")
        return False

    def _is_archive_message(self, message: PostedMessage) -> bool:
        archive_id = self.relay.archive_channel_id
        if message.channel_kind is ChannelKind.TEXT:
            return message.channel_id == archive_id
        if message.channel_kind is ChannelKind.THREAD:
            return message.parent_id == archive_id
        return False

    # ------------------------------------------------------------------
    # voice -> archive
    # ------------------------------------------------------------------

    async def _relay_voice_to_archive(self, message: PostedMessage) -> bool:
        archive = await self.gateway.fetch_archive_channel(self.relay.archive_channel_id)
        thread_id = await self._resolve_thread_id(message.channel_id, archive)

        async with self._delivery_lock:
            webhook = await self.gateway.fetch_or_create_webhook(archive)
            await self.gateway.send_as_webhook(
                webhook, message.content, message.identity, thread_id=thread_id
            )

        self.logger.debug(
            "Relayed voice message to archive",
            extra=get_message_extra(message, thread_id=str(thread_id)),
        )
        await self._record("messages_relayed_to_archive")
        return True

    async def _resolve_thread_id(self, channel_id: int, archive: Any) -> int:
        """Return the archive thread for a voice channel, creating it on first use."""
        thread_id = self.directory.thread_for(channel_id)
        if thread_id is not None:
            return thread_id

        async with self._thread_locks[channel_id]:
            # Another message may have created it while we waited
            thread_id = self.directory.thread_for(channel_id)
            if thread_id is not None:
                return thread_id

            thread = await self.gateway.create_thread(
                archive,
                format_thread_name(channel_id, self._clock()),
                self.relay.thread_auto_archive_minutes,
            )
            self.directory.link(channel_id, thread.id)
            self.logger.info(
                "Created archive thread",
                extra={"channel_id": str(channel_id), "thread_id": str(thread.id)},
            )
            await self._record("archive_threads_created")
            return thread.id

    # ------------------------------------------------------------------
    # archive -> voice
    # ------------------------------------------------------------------

    async def _relay_archive_to_voice(self, message: PostedMessage) -> bool:
        if message.channel_kind is ChannelKind.THREAD:
            target_id = self.directory.channel_for(message.channel_id)
            if target_id is not None and message.author_voice_channel_id != target_id:
                # Only members currently in the voice channel talk back into it
                target_id = None
        else:
            target_id = message.author_voice_channel_id

        if target_id is None:
            self.logger.debug(
                "No live voice channel for archive message; dropping",
                extra=get_message_extra(message),
            )
            await self._record("messages_dropped")
            return False

        channel = await self.gateway.fetch_channel(target_id)
        if channel is None:
            self.logger.debug(
                "Target voice channel is gone; dropping",
                extra=get_message_extra(message, target_channel_id=str(target_id)),
            )
            await self._record("messages_dropped")
            return False

        async with self._delivery_lock:
            webhook = await self.gateway.fetch_or_create_webhook(channel)
            await self.gateway.send_as_webhook(webhook, message.content, message.identity)

        self.logger.debug(
            "Relayed archive message to voice channel",
            extra=get_message_extra(message, target_channel_id=str(target_id)),
        )
        await self._record("messages_relayed_to_voice")
        return True

    def describe(self) -> dict[str, Any]:
        return {"linked_channels": len(self.directory)}
