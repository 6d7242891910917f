"""
Utilities for building structured logging context.

Provides helper functions that turn guild, member, channel and thread ids
into the ``extra`` dict understood by the JSON log formatter.
"""

from typing import Any

from utils.types import PostedMessage, VoiceStateSnapshot


def get_context_extra(
    guild_id: int | None = None,
    user_id: int | None = None,
    channel_id: int | None = None,
    thread_id: int | None = None,
    **additional: Any,
) -> dict[str, Any]:
    """
    Build a structured logging extra dict from ids.

    Examples:
        logger.info("Channel frozen", extra=get_context_extra(channel_id=cid, nonce=3))
    """
    extra: dict[str, Any] = {}

    # Snowflakes are stringified so JSON consumers keep full precision
    if guild_id is not None:
        extra["guild_id"] = str(guild_id)
    if user_id is not None:
        extra["user_id"] = str(user_id)
    if channel_id is not None:
        extra["channel_id"] = str(channel_id)
    if thread_id is not None:
        extra["thread_id"] = str(thread_id)

    extra.update(additional)

    return extra


def get_voice_state_extra(
    state: VoiceStateSnapshot, **additional: Any
) -> dict[str, Any]:
    """Convenience wrapper for a voice state snapshot."""
    return get_context_extra(
        guild_id=state.guild_id,
        user_id=state.member_id,
        channel_id=state.channel_id,
        **additional,
    )


def get_message_extra(message: PostedMessage, **additional: Any) -> dict[str, Any]:
    """Convenience wrapper for a posted message."""
    return get_context_extra(
        guild_id=message.guild_id,
        user_id=message.author_id,
        channel_id=message.channel_id,
        message_id=str(message.message_id),
        **additional,
    )
