"""
Test Factories Module

Centralized factory functions and fakes for config, settings and the Discord
gateway.
"""

from .config_factories import (
    AFK_ID,
    ARCHIVE_ID,
    CATEGORY_ID,
    GUILD_ID,
    LOBBY_ID,
    make_config,
    make_settings,
    temp_config_file,
)
from .discord_factories import (
    FakeGateway,
    FakeTextChannel,
    FakeVoiceChannel,
    make_message,
    make_state,
)

__all__ = [
    "AFK_ID",
    "ARCHIVE_ID",
    "CATEGORY_ID",
    "GUILD_ID",
    "LOBBY_ID",
    "FakeGateway",
    "FakeTextChannel",
    "FakeVoiceChannel",
    "make_config",
    "make_message",
    "make_settings",
    "make_state",
    "temp_config_file",
]
