"""
Voice channel lifecycle service.

Creates a personal voice channel when a member joins the lobby and deletes
channels that stay empty for a grace period.

Deferred deletion is guarded by a per-channel nonce: every time a channel
becomes empty the nonce is advanced and the pending deletion captures it. A
deletion whose nonce is no longer current was superseded (the channel was
re-occupied and emptied again) and quietly gives up. Superseded cycles are
never cancelled, they run to completion and fail the nonce check. Right before
deleting, the channel is frozen so nobody can slip in between the final
occupancy check and the delete call.
"""

import asyncio
import itertools
import random
import time
from typing import Any

from config.settings import BotSettings
from utils.log_context import get_context_extra, get_voice_state_extra
from utils.types import TrackedChannel, VoiceChannelLike, VoiceStateSnapshot

from .base import BaseService
from .gateway import Gateway
from .health_service import HealthService
from .nonce_ledger import NonceLedger

MAX_CHANNEL_NAME_LENGTH = 100
FREEZE_LIMIT = 0


class LifecycleService(BaseService):
    """Reacts to voice state transitions in the managed guild."""

    def __init__(
        self,
        settings: BotSettings,
        gateway: Gateway,
        *,
        ledger: NonceLedger | None = None,
        health: HealthService | None = None,
    ) -> None:
        super().__init__("lifecycle")
        self.settings = settings
        self.voice = settings.voice
        self.gateway = gateway
        self.ledger = ledger if ledger is not None else NonceLedger()
        self.health = health
        self.tracked_channels: dict[int, TrackedChannel] = {}
        # Members whose lobby join is being handled; duplicate events are dropped
        self._provisioning: set[int] = set()
        self._trace_ids = itertools.count(1)

    @property
    def protected_channel_ids(self) -> frozenset[int]:
        return self.voice.protected_channel_ids

    async def _record(self, metric: str) -> None:
        if self.health is not None:
            await self.health.record_metric(metric)

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    async def on_voice_state_change(
        self, before: VoiceStateSnapshot, after: VoiceStateSnapshot
    ) -> None:
        """
        Handle one voice state transition.

        Joining the lobby provisions a new channel; the channel the member
        left (if any) is always evaluated for cleanup afterwards.
        """
        if after.guild_id != self.settings.guild_id:
            return
        if before.channel_id == after.channel_id:
            # mute/deafen/stream toggles
            return

        trace_id = next(self._trace_ids)
        self.logger.debug(
            "Voice state change %s -> %s",
            before.channel_id,
            after.channel_id,
            extra=get_voice_state_extra(after, trace_id=trace_id),
        )
        await self._record("voice_state_events")

        await self._sync_voice_role(before, after, trace_id)

        if after.channel_id == self.voice.lobby_channel_id:
            await self.provision_channel(after, trace_id=trace_id)

        if before.channel_id is not None:
            await self._evaluate_left_channel(before.channel_id, trace_id)

    async def _evaluate_left_channel(self, channel_id: int, trace_id: int) -> None:
        if channel_id in self.protected_channel_ids:
            return
        try:
            channel = await self.gateway.fetch_channel(channel_id)
        except Exception as e:
            self.logger.exception(
                "Could not fetch left channel for cleanup",
                exc_info=e,
                extra=get_context_extra(channel_id=channel_id, trace_id=trace_id),
            )
            await self._record("lifecycle_failures")
            return
        if channel is None:
            self.forget_channel(channel_id)
            return
        self.schedule_cleanup(channel, trace_id=trace_id)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def provision_channel(
        self, state: VoiceStateSnapshot, *, trace_id: int | None = None
    ) -> Any | None:
        """
        Create a voice channel under the voice category and move the member in.

        If the move fails the new channel is empty and is handed to the
        cleanup path right away so it does not linger.

        Returns:
            The created channel, or None if creation failed or was a duplicate.
        """
        if state.member_id in self._provisioning:
            self.logger.debug(
                "Lobby join already being handled; ignoring duplicate event",
                extra=get_voice_state_extra(state, trace_id=trace_id),
            )
            return None

        self._provisioning.add(state.member_id)
        try:
            try:
                category = await self.gateway.fetch_category(self.voice.category_id)
                channel = await self.gateway.create_voice_channel(
                    category,
                    self._pick_channel_name(state),
                    owner_id=state.member_id if self.voice.grant_owner_permissions else None,
                    reason=f"Requested by {state.member_display_name or state.member_id}",
                )
            except Exception as e:
                self.logger.exception(
                    "Failed to create voice channel for lobby join",
                    exc_info=e,
                    extra=get_voice_state_extra(state, trace_id=trace_id),
                )
                await self._record("lifecycle_failures")
                return None

            self.tracked_channels[channel.id] = TrackedChannel(
                channel_id=channel.id,
                category_id=self.voice.category_id,
                created_at=time.time(),
                owner_id=state.member_id,
            )
            await self._record("voice_channels_created")

            try:
                await self.gateway.move_member(state.guild_id, state.member_id, channel)
            except Exception as e:
                self.logger.exception(
                    "Failed to move member into new channel; scheduling it for cleanup",
                    exc_info=e,
                    extra=get_context_extra(
                        guild_id=state.guild_id,
                        user_id=state.member_id,
                        channel_id=channel.id,
                        trace_id=trace_id,
                    ),
                )
                await self._record("lifecycle_failures")
                self.schedule_cleanup(channel, trace_id=trace_id)
                return channel

            self.logger.info(
                "Provisioned voice channel '%s'",
                getattr(channel, "name", channel.id),
                extra=get_context_extra(
                    guild_id=state.guild_id,
                    user_id=state.member_id,
                    channel_id=channel.id,
                    trace_id=trace_id,
                ),
            )
            return channel
        finally:
            self._provisioning.discard(state.member_id)

    def _pick_channel_name(self, state: VoiceStateSnapshot) -> str:
        if self.voice.channel_names:
            name = random.choice(self.voice.channel_names)
        elif state.member_display_name:
            name = f"{state.member_display_name}'s Channel"
        else:
            name = "Voice Channel"
        return name[:MAX_CHANNEL_NAME_LENGTH]

    # ------------------------------------------------------------------
    # Deferred deletion
    # ------------------------------------------------------------------

    def schedule_cleanup(
        self, channel: VoiceChannelLike | None, *, trace_id: int | None = None
    ) -> asyncio.Task | None:
        """
        Make an empty channel a deletion candidate.

        The checks and the nonce advance happen synchronously, so the captured
        nonce reflects event order; the grace-period wait and the deletion run
        in a background task.

        Returns:
            The spawned task, or None if the channel is not a candidate.
        """
        if channel is None:
            return None
        if channel.id in self.protected_channel_ids:
            return None
        if len(channel.members) > 0:
            return None

        nonce = self.ledger.advance(channel.id)
        self.logger.debug(
            "Channel empty; deletion pending",
            extra=get_context_extra(channel_id=channel.id, nonce=nonce, trace_id=trace_id),
        )
        return self._spawn_background_task(
            self._expire_channel(channel.id, nonce, trace_id),
            name=f"lifecycle.expire.{channel.id}.{nonce}",
        )

    async def _expire_channel(
        self, channel_id: int, nonce: int, trace_id: int | None
    ) -> bool:
        """
        Wait out the grace period, then delete the channel if this cycle is
        still the current one and the channel is still empty.

        Returns:
            True if the channel was deleted by this cycle.
        """
        extra = get_context_extra(channel_id=channel_id, nonce=nonce, trace_id=trace_id)
        await self._record("cleanups_scheduled")
        await asyncio.sleep(self.voice.grace_period_seconds)

        try:
            channel = await self.gateway.fetch_channel(channel_id)
            if channel is None:
                self.logger.debug("Channel already gone", extra=extra)
                self.forget_channel(channel_id)
                return False

            if not self.ledger.is_current(channel_id, nonce):
                self.logger.debug(
                    "Cleanup superseded (current nonce %s)",
                    self.ledger.current(channel_id),
                    extra=extra,
                )
                await self._record("cleanups_superseded")
                return False

            if channel_id in self.protected_channel_ids:
                return False

            if not await self.gateway.set_channel_user_limit(channel, FREEZE_LIMIT):
                self.forget_channel(channel_id)
                return False

            try:
                return await self._delete_frozen(channel_id, extra)
            except Exception:
                # A frozen channel can never empty again; lift the freeze
                await self._release_freeze(channel, extra)
                raise
        except Exception as e:
            # The nonce advance stands; the next empty transition retries
            self.logger.exception("Cleanup cycle failed", exc_info=e, extra=extra)
            await self._record("lifecycle_failures")
            return False

    async def _delete_frozen(self, channel_id: int, extra: dict[str, Any]) -> bool:
        """Re-check a frozen channel and delete it if it is still empty."""
        channel = await self.gateway.fetch_channel(channel_id)
        if channel is None:
            self.forget_channel(channel_id)
            return False

        if len(channel.members) > 0:
            self.logger.info("Channel re-occupied during cleanup; unfreezing", extra=extra)
            await self.gateway.set_channel_user_limit(channel, None)
            await self._record("cleanups_aborted_reoccupied")
            return False

        deleted = await self.gateway.delete_channel(
            channel, reason="Empty voice channel cleanup"
        )
        self.forget_channel(channel_id)
        if deleted:
            await self._record("voice_channels_deleted")
            self.logger.info("Deleted empty voice channel", extra=extra)
        return deleted

    async def _release_freeze(self, channel: Any, extra: dict[str, Any]) -> None:
        try:
            await self.gateway.set_channel_user_limit(channel, None)
        except Exception as e:
            self.logger.exception(
                "Could not unfreeze channel after failed cleanup", exc_info=e, extra=extra
            )

    def forget_channel(self, channel_id: int) -> None:
        """Drop tracking for a channel that no longer exists. The nonce is kept."""
        self.tracked_channels.pop(channel_id, None)

    # ------------------------------------------------------------------
    # Voice role
    # ------------------------------------------------------------------

    async def _sync_voice_role(
        self, before: VoiceStateSnapshot, after: VoiceStateSnapshot, trace_id: int
    ) -> None:
        role_id = self.voice.role_id
        if role_id is None:
            return
        try:
            if before.channel_id is None and after.channel_id is not None:
                await self.gateway.add_member_role(after.guild_id, after.member_id, role_id)
            elif before.channel_id is not None and after.channel_id is None:
                await self.gateway.remove_member_role(after.guild_id, after.member_id, role_id)
        except Exception as e:
            self.logger.exception(
                "Failed to update voice role",
                exc_info=e,
                extra=get_voice_state_extra(after, trace_id=trace_id),
            )
            await self._record("lifecycle_failures")

    def describe(self) -> dict[str, Any]:
        return {
            "tracked_channels": len(self.tracked_channels),
            "nonce_entries": len(self.ledger),
            "pending_cleanups": len(self._background_tasks),
        }
