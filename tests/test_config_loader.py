"""
Config Loader Tests

Loading, status reporting and logging level validation, using temp config
files.
"""

from config.config_loader import ConfigLoader
from tests.factories.config_factories import make_config, temp_config_file


class TestConfigLoaderBasics:
    """Test basic config loading functionality."""

    def test_load_valid_config(self):
        with temp_config_file(make_config(guild_id=42)) as path:
            result = ConfigLoader.load_config(path)

            assert result["guild_id"] == 42
            assert ConfigLoader.get("guild_id") == 42
            assert ConfigLoader.get_section("relay")["webhook_name"] == "Voice Relay"

    def test_config_status_ok_after_successful_load(self):
        with temp_config_file(make_config()) as path:
            ConfigLoader.load_config(path)
            status = ConfigLoader.get_config_status()

            assert status["config_status"] == "ok"
            assert status["config_path"] == path
            assert status["config_loaded"] is True

    def test_config_is_cached(self):
        with temp_config_file(make_config(guild_id=1)) as path:
            first = ConfigLoader.load_config(path)
        with temp_config_file(make_config(guild_id=2)) as path:
            second = ConfigLoader.load_config(path)

        assert first is second
        assert second["guild_id"] == 1

    def test_config_path_env_override(self, monkeypatch):
        with temp_config_file(make_config(guild_id=7)) as path:
            monkeypatch.setenv("CONFIG_PATH", path)

            assert ConfigLoader.load_config()["guild_id"] == 7


class TestConfigLoaderErrors:
    """Missing or malformed files degrade to an empty config."""

    def test_missing_file_is_degraded(self, tmp_path):
        result = ConfigLoader.load_config(str(tmp_path / "nope.yaml"))

        assert result == {}
        assert ConfigLoader.get_config_status()["config_status"] == "degraded"

    def test_invalid_yaml_is_error(self):
        with temp_config_file(content="guild_id: [unclosed") as path:
            result = ConfigLoader.load_config(path)

        assert result == {}
        assert ConfigLoader.get_config_status()["config_status"] == "error"

    def test_non_mapping_is_degraded(self):
        with temp_config_file(content="- just\n- a list\n") as path:
            result = ConfigLoader.load_config(path)

        assert result == {}
        assert ConfigLoader.get_config_status()["config_status"] == "degraded"

    def test_get_section_ignores_non_mapping(self):
        with temp_config_file(make_config(extra={"health": "often"})) as path:
            ConfigLoader.load_config(path)

        assert ConfigLoader.get_section("health") == {}
        assert ConfigLoader.get_section("absent") == {}


class TestLoggingLevelValidation:
    def test_invalid_level_defaults_to_info(self):
        with temp_config_file(make_config(logging_level="SUPER_DEBUG")) as path:
            result = ConfigLoader.load_config(path)

        assert result["logging"]["level"] == "INFO"

    def test_level_is_upper_cased(self):
        with temp_config_file(make_config(logging_level="debug")) as path:
            result = ConfigLoader.load_config(path)

        assert result["logging"]["level"] == "DEBUG"

    def test_missing_logging_section_added(self):
        config = make_config()
        del config["logging"]
        with temp_config_file(config) as path:
            result = ConfigLoader.load_config(path)

        assert result["logging"] == {"level": "INFO"}
