import pytest

from perpetual_storage.settings import get_settings

pytest_plugins = ["tests.fixtures.storage_fixtures"]


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
