"""Unit tests for the service orchestrator."""

import asyncio

import pytest

from similar_products.errors import UpstreamNotFound
from similar_products.pipeline.orchestrator import ServiceOrchestrator
from tests.fixtures.catalog_data import CatalogStub


def test_components_built_from_config(sample_config):
    orchestrator = ServiceOrchestrator(sample_config)

    assert orchestrator.http_client.base_url == "http://catalog.test"
    assert orchestrator.client.request_timeout == 1.0
    assert orchestrator.retry_handler.max_attempts == 3
    assert orchestrator.circuit_breaker.window_size == 4
    assert orchestrator.circuit_breaker.half_open_calls == 2
    assert orchestrator.aggregator.worker_pool_size == 4
    assert orchestrator.cache.capacity == 10
    assert orchestrator.service.cache is orchestrator.cache


def test_clock_shared_by_breaker_and_cache(sample_config, fake_clock):
    orchestrator = ServiceOrchestrator(sample_config, clock=fake_clock)

    assert orchestrator.circuit_breaker.clock is fake_clock
    assert orchestrator.cache.clock is fake_clock


@pytest.mark.asyncio
async def test_lookup(sample_config, catalog):
    async with ServiceOrchestrator(sample_config, transport=catalog.transport) as orchestrator:
        result = await orchestrator.get_similar_products("1")

    assert result.ids == ("2", "3", "4")


@pytest.mark.asyncio
async def test_not_found_propagates(sample_config, catalog):
    async with ServiceOrchestrator(sample_config, transport=catalog.transport) as orchestrator:
        with pytest.raises(UpstreamNotFound):
            await orchestrator.get_similar_products("999")


@pytest.mark.asyncio
async def test_total_timeout(sample_config):
    config = sample_config.model_copy(update={"total_timeout": 0.05})
    catalog = CatalogStub(latency=0.2)

    async with ServiceOrchestrator(config, transport=catalog.transport) as orchestrator:
        with pytest.raises(asyncio.TimeoutError):
            await orchestrator.get_similar_products("1")

        # The shared aggregation keeps running and still fills the cache
        await asyncio.sleep(1.0)
        assert "1" in orchestrator.cache


@pytest.mark.asyncio
async def test_health_counts_outcomes(sample_config, catalog):
    catalog.failing.add("3")

    async with ServiceOrchestrator(sample_config, transport=catalog.transport) as orchestrator:
        await orchestrator.get_similar_products("1")
        health = orchestrator.health()

    detail = health["circuits"]["product_detail"]
    assert health["status"] == "degraded"
    assert detail["state"] == "open"
    assert health["cache"]["misses"] == 1
