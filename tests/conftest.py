"""Shared fixtures."""
import pytest
from eventmerge.config import get_settings
from eventmerge.metrics.collector import collector


@pytest.fixture(autouse=True)
def fresh_state():
    """Start every test with default settings and empty metrics."""
    get_settings.cache_clear()
    collector.reset()
    yield
    get_settings.cache_clear()
