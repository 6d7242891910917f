"""
Service Container Tests
"""

import pytest

from config.config_loader import ConfigLoader
from services.service_container import ServiceContainer
from tests.factories import FakeGateway, make_config, temp_config_file
from utils.errors import ConfigError


@pytest.mark.asyncio
async def test_accessors_raise_before_initialize():
    container = ServiceContainer()

    with pytest.raises(RuntimeError):
        _ = container.lifecycle
    with pytest.raises(RuntimeError):
        _ = container.relay
    assert container.get_all_services() == []


@pytest.mark.asyncio
async def test_initialize_and_cleanup(settings):
    gateway = FakeGateway()
    container = ServiceContainer(settings=settings, gateway=gateway)

    await container.initialize()

    assert container.settings is settings
    assert container.gateway is gateway
    assert container.lifecycle.gateway is gateway
    assert container.relay.gateway is gateway
    assert container.lifecycle.health is container.health
    assert [s.name for s in container.get_all_services()] == ["health", "lifecycle", "relay"]

    await container.cleanup()

    assert container.get_all_services() == []


@pytest.mark.asyncio
async def test_settings_loaded_from_config_file():
    with temp_config_file(make_config(guild_id=55)) as path:
        ConfigLoader.load_config(path)

    container = ServiceContainer(gateway=FakeGateway())
    await container.initialize()

    assert container.settings.guild_id == 55
    await container.cleanup()


@pytest.mark.asyncio
async def test_invalid_config_aborts_startup(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.yaml"))

    container = ServiceContainer(gateway=FakeGateway())

    with pytest.raises(ConfigError):
        await container.initialize()


@pytest.mark.asyncio
async def test_gateway_requires_bot(settings):
    container = ServiceContainer(settings=settings)

    with pytest.raises(RuntimeError):
        await container.initialize()
