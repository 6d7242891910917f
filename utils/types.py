"""
Type definitions and common data structures for the Discord bot.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class VoiceChannelLike(Protocol):
    """The parts of a voice channel the lifecycle service reads."""

    id: int

    @property
    def members(self) -> Sequence[Any]: ...


@dataclass(frozen=True)
class VoiceStateSnapshot:
    """One side of a voice state transition."""

    guild_id: int
    member_id: int
    channel_id: int | None
    member_display_name: str = ""


@dataclass
class TrackedChannel:
    """A voice channel created by the lifecycle service."""

    channel_id: int
    category_id: int
    created_at: float
    owner_id: int | None = None


class ChannelKind(Enum):
    """Where a message was posted, as far as the relay cares."""

    VOICE = "voice"
    THREAD = "thread"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True)
class RelayIdentity:
    """Display name and avatar attached to a relayed copy."""

    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class PostedMessage:
    """A message-create event reduced to what the relay reads."""

    message_id: int
    guild_id: int | None
    channel_id: int
    channel_kind: ChannelKind
    content: str
    author_id: int
    author_display_name: str
    author_avatar_url: str | None = None
    author_is_bot: bool = False
    webhook_id: int | None = None
    parent_id: int | None = None  # parent channel when posted in a thread
    author_voice_channel_id: int | None = None

    @property
    def identity(self) -> RelayIdentity:
        return RelayIdentity(
            display_name=self.author_display_name, avatar_url=self.author_avatar_url
        )


# Type aliases
ChannelId = int
ThreadId = int
