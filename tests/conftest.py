"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio

from similar_products.fetcher.catalog_client import CatalogClient
from similar_products.fetcher.circuit_breaker import CircuitBreaker
from similar_products.fetcher.http_client import AsyncHTTPClient
from similar_products.fetcher.retry_handler import RetryHandler
from similar_products.models.config import ServiceConfig
from tests.fixtures.catalog_data import CatalogStub, FakeClock, no_sleep


@pytest.fixture
def sample_config():
    """Provide a sample configuration for testing."""
    return ServiceConfig(
        upstream_base_url="http://catalog.test",
        connect_timeout=1.0,
        read_timeout=1.0,
        request_timeout=1.0,
        max_retries=2,
        retry_base_delay=0.001,
        retry_max_delay=0.002,
        retry_jitter_max=0.0,
        circuit_breaker_failure_rate_threshold=50.0,
        circuit_breaker_window_size=4,
        circuit_breaker_minimum_calls=4,
        circuit_breaker_cooldown=10.0,
        circuit_breaker_half_open_calls=2,
        worker_pool_size=4,
        cache_capacity=10,
        cache_ttl=30.0,
        total_timeout=5.0,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def catalog():
    """Default upstream: "1" -> ["2", "3", "4"], "99" -> [], anything else unknown."""
    return CatalogStub()


@pytest.fixture
def circuit_breaker(fake_clock):
    return CircuitBreaker(
        failure_rate_threshold=50.0,
        window_size=4,
        minimum_calls=4,
        cooldown_seconds=10.0,
        half_open_calls=2,
        clock=fake_clock,
    )


@pytest.fixture
def retry_handler():
    return RetryHandler(max_retries=2, base_delay=0.001, max_delay=0.002, jitter_max=0.0, sleeper=no_sleep)


@pytest_asyncio.fixture
async def catalog_client(catalog, circuit_breaker, retry_handler):
    """CatalogClient wired to the in-memory catalog."""
    async with AsyncHTTPClient(base_url="http://catalog.test", transport=catalog.transport) as http_client:
        yield CatalogClient(http_client, circuit_breaker, retry_handler, request_timeout=1.0)
