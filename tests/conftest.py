import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path for CI environments where
# Python might not automatically include it (e.g., some GitHub
# Actions runners invoking pytest differently).
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.config_loader import ConfigLoader
from services.health_service import HealthService
from services.lifecycle_service import LifecycleService
from services.relay_service import RelayService
from tests.factories import FakeGateway, make_settings


@pytest.fixture(autouse=True)
def reset_config_loader():
    """Keep the class-level config cache from leaking between tests."""
    ConfigLoader.reset()
    yield
    ConfigLoader.reset()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture
async def health():
    service = HealthService()
    await service.initialize()
    yield service
    await service.shutdown()


@pytest_asyncio.fixture
async def lifecycle(settings, gateway, health):
    service = LifecycleService(settings, gateway, health=health)
    await service.initialize()
    yield service
    await service.shutdown()


@pytest_asyncio.fixture
async def relay(settings, gateway, health):
    service = RelayService(settings, gateway, health=health)
    await service.initialize()
    yield service
    await service.shutdown()
