"""Shared pytest fixtures for LoRa adapter tests."""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add the parent directory to the path if not already there
# This ensures the lora_adapter module can be imported in CI
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from lora_adapter.config import Config, Environment
from lora_adapter.core.enums import RouteNamespace
from lora_adapter.core.services import AdapterService
from lora_adapter.adapters.database import DatabaseManager, SQLRouteMapRepository
from lora_adapter.adapters.memory import InMemoryRouteMapRepository
from lora_adapter.adapters.messaging import MockBusClient
from tests.utils import FIXED_NOW


@pytest.fixture
def things_repo():
    """Thing route map keyed by device EUI."""
    return InMemoryRouteMapRepository()


@pytest.fixture
def channels_repo():
    """Channel route map keyed by application ID."""
    return InMemoryRouteMapRepository()


@pytest_asyncio.fixture
async def mock_bus():
    """Connected mock bus client that records published envelopes."""
    bus = MockBusClient()
    await bus.connect()
    yield bus
    await bus.disconnect()


@pytest.fixture
def adapter_service(mock_bus, things_repo, channels_repo):
    """Adapter service over in-memory route maps with a frozen clock."""
    return AdapterService(
        bus=mock_bus,
        things=things_repo,
        channels=channels_repo,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing at a throwaway sqlite database."""
    return Config(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'routes.db'}",
        environment=Environment.CI,
    )


@pytest_asyncio.fixture
async def db_manager(test_config):
    """Initialized database manager with the route map tables created."""
    manager = DatabaseManager(test_config)
    await manager.initialize()
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def sql_things_repo(db_manager):
    return SQLRouteMapRepository(db_manager, RouteNamespace.THING)


@pytest.fixture
def sql_channels_repo(db_manager):
    return SQLRouteMapRepository(db_manager, RouteNamespace.CHANNEL)
