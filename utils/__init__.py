"""
Utilities Package

Common utilities and helper functions for the Discord bot.
"""

from .errors import BotError, ConfigError, GatewayError
from .logging import get_logger, setup_logging
from .tasks import spawn
from .types import (
    ChannelKind,
    PostedMessage,
    RelayIdentity,
    TrackedChannel,
    VoiceStateSnapshot,
)

__all__ = [
    "BotError",
    "ChannelKind",
    "ConfigError",
    "GatewayError",
    "PostedMessage",
    "RelayIdentity",
    "TrackedChannel",
    "VoiceStateSnapshot",
    "get_logger",
    "setup_logging",
    "spawn",
]
