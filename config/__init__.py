from .config_loader import ConfigLoader
from .settings import BotSettings, RelaySettings, VoiceSettings

__all__ = ["BotSettings", "ConfigLoader", "RelaySettings", "VoiceSettings"]
