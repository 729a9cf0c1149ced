"""Runtime wiring of the similar products components."""

import asyncio
from typing import Optional

import httpx

from similar_products.clock import Clock
from similar_products.fetcher.catalog_client import PRODUCT_DETAIL, SIMILAR_IDS, CatalogClient
from similar_products.fetcher.circuit_breaker import CircuitBreaker
from similar_products.fetcher.http_client import AsyncHTTPClient
from similar_products.fetcher.retry_handler import RetryHandler
from similar_products.models.config import ServiceConfig
from similar_products.models.data_models import AggregatedResult, CircuitState
from similar_products.monitoring.logger import StructuredLogger
from similar_products.processor import ResultCache, SimilarProductsAggregator, SimilarProductsService


class ServiceOrchestrator:
    """
    Builds and owns every component of the service for one process.

    Use as an async context manager: entering opens the HTTP connection pool,
    exiting closes it. The circuit breaker and the result cache live as long
    as the orchestrator.
    """

    def __init__(
        self,
        config: ServiceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Initialize orchestrator with service configuration.

        Args:
            config: Service configuration object
            transport: Optional httpx transport replacing the network (tests, mock catalog)
            clock: Optional clock shared by the circuit breaker and the cache
            logger: Optional structured logger (created from config otherwise)
        """
        self.config = config
        self.logger = logger or StructuredLogger(level=config.log_level)

        self.http_client = AsyncHTTPClient.from_config(config, transport=transport)
        self.circuit_breaker = CircuitBreaker(
            failure_rate_threshold=config.circuit_breaker_failure_rate_threshold,
            window_size=config.circuit_breaker_window_size,
            minimum_calls=config.circuit_breaker_minimum_calls,
            cooldown_seconds=config.circuit_breaker_cooldown,
            half_open_calls=config.circuit_breaker_half_open_calls,
            clock=clock,
            logger=self.logger
        )
        self.retry_handler = RetryHandler(
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter_max=config.retry_jitter_max,
            retryable_status_codes=config.retryable_status_codes
        )
        self.client = CatalogClient(
            self.http_client,
            self.circuit_breaker,
            self.retry_handler,
            request_timeout=config.request_timeout,
            logger=self.logger
        )
        self.aggregator = SimilarProductsAggregator(
            self.client,
            worker_pool_size=config.worker_pool_size,
            fanout_timeout=config.fanout_timeout,
            logger=self.logger
        )
        self.cache = ResultCache(
            capacity=config.cache_capacity,
            ttl=config.cache_ttl,
            clock=clock,
            logger=self.logger
        )
        self.service = SimilarProductsService(self.aggregator, self.cache, logger=self.logger)

    async def __aenter__(self) -> "ServiceOrchestrator":
        await self.http_client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.http_client.__aexit__(exc_type, exc_val, exc_tb)

    async def get_similar_products(self, root_id: str) -> AggregatedResult:
        """
        Look up similar products, enforcing the total_timeout deadline.

        Raises:
            UpstreamNotFound: The root product is unknown
            UpstreamUnavailable: The catalog could not answer
            asyncio.TimeoutError: The request exceeded total_timeout
        """
        try:
            result = await asyncio.wait_for(
                self.service.get_similar_products(root_id),
                timeout=self.config.total_timeout
            )
        except asyncio.TimeoutError:
            self.logger.log("request_timeout", product_id=root_id, timeout=self.config.total_timeout)
            raise

        self.logger.log(
            "request_complete",
            product_id=root_id,
            resolved=len(result),
            missing=result.missing
        )
        return result

    def health(self) -> dict:
        """Circuit and cache status for health reporting."""
        circuits = {}
        for name in (SIMILAR_IDS, PRODUCT_DETAIL):
            snapshot = self.circuit_breaker.snapshot(name)
            circuits[name] = {
                "state": snapshot.state.value,
                "failure_rate": snapshot.failure_rate,
                "buffered_calls": snapshot.buffered_calls,
                "failed_calls": snapshot.failed_calls
            }
        degraded = any(c["state"] != CircuitState.CLOSED.value for c in circuits.values())
        return {
            "status": "degraded" if degraded else "ok",
            "circuits": circuits,
            "cache": self.cache.stats().to_dict(),
            "inflight": self.service.inflight
        }
