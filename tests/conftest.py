"""
Shared test configuration for ContentCore.

This module registers markers and provides fixtures for the service and
its fakes so tests run without network access or real time passing.
"""

# Third-party imports
import pytest

# Local imports
from contentcore.config import CacheOptions, Config, RateLimiterConfig
from contentcore.extractor.dom import parse_html
from contentcore.service import ContentExtractorService
from tests.helpers import RICH_ARTICLE_HTML, SIMPLE_ARTICLE_HTML, FakeClock, FakeFetcher

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "network: Tests requiring network access")
    config.addinivalue_line("markers", "slow: Tests that take >10 seconds")


# ============================================================================
# Core Test Fixtures
# ============================================================================


@pytest.fixture
def simple_html() -> str:
    return SIMPLE_ARTICLE_HTML


@pytest.fixture
def rich_html() -> str:
    return RICH_ARTICLE_HTML


@pytest.fixture
def simple_doc():
    return parse_html(SIMPLE_ARTICLE_HTML)


@pytest.fixture
def rich_doc():
    return parse_html(RICH_ARTICLE_HTML)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(default=SIMPLE_ARTICLE_HTML)


@pytest.fixture
def test_config() -> Config:
    """Configuration with generous limits for service tests."""
    return Config(
        cache=CacheOptions(ttl=60.0, max_entries=10),
        rate_limiter=RateLimiterConfig(max_requests=100, window_seconds=60.0),
    )


@pytest.fixture
def service(test_config, fetcher, clock) -> ContentExtractorService:
    """Service wired to the fake fetcher and clock."""
    return ContentExtractorService(test_config, fetcher=fetcher, clock=clock)
