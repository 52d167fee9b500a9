import pytest
from simpledb.mapping import get_mapping


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear record mapping cache before and after each test to ensure test isolation."""
    get_mapping.cache_clear()
    yield
    get_mapping.cache_clear()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
    'tests.fixtures.mysql',
]
