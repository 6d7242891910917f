# config/config_loader.py

import logging
import os
from pathlib import Path
from typing import Any, ClassVar

import yaml

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _get_project_root() -> Path:
    """Derive project root from this file's location: config/config_loader.py -> project root."""
    return Path(__file__).resolve().parent.parent


class ConfigLoader:
    """
    Singleton class to load and provide access to the YAML configuration.

    A missing or unreadable file never stops the process here; the loader
    falls back to an empty mapping and records the status so the typed
    settings layer can decide what is fatal.
    """

    _config: ClassVar[dict[str, Any]] = {}
    _config_status: ClassVar[str] = "not_loaded"  # "ok", "degraded", "error"
    _config_path: ClassVar[str | None] = None

    @classmethod
    def load_config(cls, config_path: str | None = None) -> dict[str, Any]:
        """Load the configuration from a YAML file if not already loaded.

        Args:
            config_path: Path to the configuration file. If not provided,
                uses CONFIG_PATH env var or defaults to project_root/config/config.yaml.

        Returns:
            Dict[str, Any]: Loaded configuration dictionary.
        """
        if cls._config:
            return cls._config

        if config_path is None:
            config_path = os.environ.get("CONFIG_PATH")
            if config_path:
                logging.info("Config path overridden via CONFIG_PATH env: %s", config_path)

        if config_path is None:
            config_path = str(_get_project_root() / "config" / "config.yaml")

        cls._config_path = config_path

        try:
            with Path(config_path).open(encoding="utf-8") as file:
                loaded = yaml.safe_load(file) or {}
        except FileNotFoundError:
            logging.warning(
                "Configuration file not found at path: %s; using empty config (degraded mode).",
                config_path,
            )
            cls._config = {}
            cls._config_status = "degraded"
            return cls._config
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            logging.exception(
                "Error reading configuration at %s: %s; using empty config.",
                config_path,
                e,
            )
            cls._config = {}
            cls._config_status = "error"
            return cls._config

        if not isinstance(loaded, dict):
            logging.warning("Configuration file didn't contain a mapping; using empty config.")
            cls._config = {}
            cls._config_status = "degraded"
            return cls._config

        cls._config = loaded
        cls._config_status = "ok"
        cls._validate_logging_level()
        logging.info("Configuration loaded successfully from %s", config_path)
        return cls._config

    @classmethod
    def get_config_status(cls) -> dict[str, Any]:
        """Return config health status for the periodic health report."""
        return {
            "config_status": cls._config_status,
            "config_path": cls._config_path,
            "config_loaded": bool(cls._config),
        }

    @classmethod
    def _validate_logging_level(cls) -> None:
        logging_cfg = cls._config.get("logging")
        if not isinstance(logging_cfg, dict):
            logging_cfg = cls._config["logging"] = {}
        level = str(logging_cfg.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            logging.warning(f"Invalid logging level '{level}' in config. Defaulting to 'INFO'.")
            level = "INFO"
        logging_cfg["level"] = level

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Retrieve a top-level value from the configuration."""
        return cls._config.get(key, default)

    @classmethod
    def get_section(cls, name: str) -> dict[str, Any]:
        """Retrieve a nested mapping, or an empty dict if absent or malformed."""
        section = cls._config.get(name)
        return section if isinstance(section, dict) else {}

    @classmethod
    def reset(cls) -> None:
        """Reset the config loader state (useful for testing)."""
        cls._config = {}
        cls._config_status = "not_loaded"
        cls._config_path = None
