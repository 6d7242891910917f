"""
Typed settings built once at startup from the YAML configuration.

Both controllers receive the same ``BotSettings`` instance; nothing reads the
raw config mapping after startup.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from utils.errors import ConfigError

DEFAULT_GRACE_PERIOD_SECONDS = 30.0
DEFAULT_WEBHOOK_NAME = "Voice Relay"
# Discord only accepts these thread auto-archive durations (minutes)
VALID_AUTO_ARCHIVE_MINUTES = (60, 1440, 4320, 10080)


def _require_id(section: Mapping[str, Any], key: str, where: str) -> int:
    value = section.get(key)
    if value is None:
        raise ConfigError(f"Missing required setting '{where}{key}'")
    return _as_id(value, f"{where}{key}")


def _optional_id(section: Mapping[str, Any], key: str, where: str) -> int | None:
    value = section.get(key)
    if value is None or value == "":
        return None
    return _as_id(value, f"{where}{key}")


def _as_id(value: Any, name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ConfigError(f"Setting '{name}' must be a Discord id, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Setting '{name}' must be a Discord id, got {value!r}") from e
    if parsed <= 0:
        raise ConfigError(f"Setting '{name}' must be positive, got {parsed}")
    return parsed


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"Setting '{name}' must be a mapping")
    return section


@dataclass(frozen=True)
class VoiceSettings:
    lobby_channel_id: int
    category_id: int
    afk_channel_id: int | None = None
    extra_protected_ids: frozenset[int] = frozenset()
    grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS
    channel_names: tuple[str, ...] = ()
    grant_owner_permissions: bool = True
    role_id: int | None = None

    @property
    def protected_channel_ids(self) -> frozenset[int]:
        """Channels that are never deleted: lobby, AFK and any extras."""
        ids = {self.lobby_channel_id, *self.extra_protected_ids}
        if self.afk_channel_id is not None:
            ids.add(self.afk_channel_id)
        return frozenset(ids)


@dataclass(frozen=True)
class RelaySettings:
    archive_channel_id: int
    webhook_id: int | None = None
    webhook_name: str = DEFAULT_WEBHOOK_NAME
    thread_auto_archive_minutes: int = 1440


@dataclass(frozen=True)
class BotSettings:
    guild_id: int
    voice: VoiceSettings
    relay: RelaySettings
    health_report_interval_seconds: float = 900.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "BotSettings":
        """
        Build settings from the loaded YAML mapping.

        Raises:
            ConfigError: if a required id is missing or a value is malformed.
        """
        guild_id = _require_id(config, "guild_id", "")

        voice_cfg = _section(config, "voice")
        grace = voice_cfg.get("grace_period_seconds", DEFAULT_GRACE_PERIOD_SECONDS)
        try:
            grace = float(grace)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Setting 'voice.grace_period_seconds' is not a number: {grace!r}") from e
        if grace < 0:
            raise ConfigError("Setting 'voice.grace_period_seconds' must not be negative")

        names = voice_cfg.get("channel_names") or []
        if not isinstance(names, list):
            raise ConfigError("Setting 'voice.channel_names' must be a list")

        protected = voice_cfg.get("protected_channel_ids") or []
        if not isinstance(protected, list):
            raise ConfigError("Setting 'voice.protected_channel_ids' must be a list")

        voice = VoiceSettings(
            lobby_channel_id=_require_id(voice_cfg, "lobby_channel_id", "voice."),
            category_id=_require_id(voice_cfg, "category_id", "voice."),
            afk_channel_id=_optional_id(voice_cfg, "afk_channel_id", "voice."),
            extra_protected_ids=frozenset(
                _as_id(cid, "voice.protected_channel_ids") for cid in protected
            ),
            grace_period_seconds=grace,
            channel_names=tuple(str(n).strip() for n in names if str(n).strip()),
            grant_owner_permissions=bool(voice_cfg.get("grant_owner_permissions", True)),
            role_id=_optional_id(voice_cfg, "role_id", "voice."),
        )

        relay_cfg = _section(config, "relay")
        auto_archive = relay_cfg.get("thread_auto_archive_minutes", 1440)
        if auto_archive not in VALID_AUTO_ARCHIVE_MINUTES:
            raise ConfigError(
                "Setting 'relay.thread_auto_archive_minutes' must be one of "
                f"{VALID_AUTO_ARCHIVE_MINUTES}, got {auto_archive!r}"
            )
        relay = RelaySettings(
            archive_channel_id=_require_id(relay_cfg, "archive_channel_id", "relay."),
            webhook_id=_optional_id(relay_cfg, "webhook_id", "relay."),
            webhook_name=str(relay_cfg.get("webhook_name") or DEFAULT_WEBHOOK_NAME),
            thread_auto_archive_minutes=auto_archive,
        )

        health_cfg = _section(config, "health")
        interval = health_cfg.get("report_interval_seconds", 900)
        try:
            interval = float(interval)
        except (TypeError, ValueError) as e:
            raise ConfigError("Setting 'health.report_interval_seconds' is not a number") from e
        if interval <= 0:
            raise ConfigError("Setting 'health.report_interval_seconds' must be positive")

        return cls(
            guild_id=guild_id,
            voice=voice,
            relay=relay,
            health_report_interval_seconds=interval,
        )
