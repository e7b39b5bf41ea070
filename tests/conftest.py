import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path for CI environments where
# Python might not automatically include it.
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from svelte_config_cache.config.settings import SettingsLoader
from svelte_config_cache.services.config_cache import ConfigCache
from tests.factories import FakeResolver


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Each test starts without loaded settings or a settings env override."""
    monkeypatch.delenv("SVELTE_CONFIG_CACHE_SETTINGS", raising=False)
    SettingsLoader.reset()
    yield
    SettingsLoader.reset()


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest_asyncio.fixture
async def config_cache(fake_resolver):
    """ConfigCache wired to a recording resolver."""
    cache = ConfigCache(resolver=fake_resolver)
    await cache.initialize()
    yield cache
    await cache.shutdown()


@pytest_asyncio.fixture
async def real_cache():
    """ConfigCache using the file-system loader and enumerator."""
    cache = ConfigCache()
    await cache.initialize()
    yield cache
    await cache.shutdown()
