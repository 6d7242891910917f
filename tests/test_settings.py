"""
Typed settings built from the config mapping.
"""

import pytest

from config.settings import BotSettings
from tests.factories import (
    AFK_ID,
    ARCHIVE_ID,
    CATEGORY_ID,
    GUILD_ID,
    LOBBY_ID,
    make_config,
)
from utils.errors import ConfigError


def test_builds_from_full_config():
    settings = BotSettings.from_config(
        make_config(voice={"channel_names": ["Dojo", " ", "Garage "], "role_id": "77"})
    )

    assert settings.guild_id == GUILD_ID
    assert settings.voice.lobby_channel_id == LOBBY_ID
    assert settings.voice.category_id == CATEGORY_ID
    assert settings.voice.channel_names == ("Dojo", "Garage")
    assert settings.voice.role_id == 77
    assert settings.relay.archive_channel_id == ARCHIVE_ID
    assert settings.relay.webhook_id is None
    assert settings.health_report_interval_seconds == 900.0


def test_protected_ids_include_lobby_afk_and_extras():
    settings = BotSettings.from_config(make_config(voice={"protected_channel_ids": [55]}))

    assert settings.voice.protected_channel_ids == frozenset({LOBBY_ID, AFK_ID, 55})


def test_afk_channel_is_optional():
    settings = BotSettings.from_config(make_config(voice={"afk_channel_id": None}))

    assert settings.voice.protected_channel_ids == frozenset({LOBBY_ID})


def test_defaults_apply():
    config = make_config()
    del config["voice"]["grace_period_seconds"]
    del config["relay"]["webhook_name"]

    settings = BotSettings.from_config(config)

    assert settings.voice.grace_period_seconds == 30.0
    assert settings.relay.webhook_name == "Voice Relay"
    assert settings.relay.thread_auto_archive_minutes == 1440


@pytest.mark.parametrize(
    "config",
    [
        make_config(guild_id=None),
        make_config(voice={"lobby_channel_id": None}),
        make_config(voice={"category_id": "not-a-number"}),
        make_config(voice={"category_id": True}),
        make_config(voice={"category_id": -5}),
        make_config(relay={"archive_channel_id": None}),
        make_config(voice={"grace_period_seconds": -1}),
        make_config(voice={"grace_period_seconds": "soon"}),
        make_config(voice={"channel_names": "Dojo"}),
        make_config(voice={"protected_channel_ids": 55}),
        make_config(relay={"thread_auto_archive_minutes": 30}),
        make_config(extra={"voice": ["not", "a", "mapping"]}),
        make_config(extra={"health": {"report_interval_seconds": "hourly"}}),
        make_config(extra={"health": {"report_interval_seconds": 0}}),
        make_config(extra={"health": {"report_interval_seconds": -5}}),
    ],
)
def test_invalid_config_raises(config):
    with pytest.raises(ConfigError):
        BotSettings.from_config(config)


def test_empty_config_raises():
    with pytest.raises(ConfigError, match="guild_id"):
        BotSettings.from_config({})
