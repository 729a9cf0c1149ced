"""Cached entry point for similar product lookups."""

import asyncio
from typing import Dict, Optional

from similar_products.models.data_models import AggregatedResult
from similar_products.processor.aggregator import SimilarProductsAggregator
from similar_products.processor.result_cache import ResultCache


class SimilarProductsService:
    """
    Serves aggregated results from the cache, computing them on a miss.

    Concurrent misses for the same root product share a single in-flight
    aggregation: exactly one fan-out runs per key, and every waiting caller
    gets the same result or the same exception. Failures are not cached.
    """

    def __init__(
        self,
        aggregator: SimilarProductsAggregator,
        cache: ResultCache,
        logger: Optional['StructuredLogger'] = None
    ):
        self.aggregator = aggregator
        self.cache = cache
        self.logger = logger
        self._inflight: Dict[str, "asyncio.Task[AggregatedResult]"] = {}

    async def get_similar_products(self, root_id: str) -> AggregatedResult:
        """
        Return the similar products of ``root_id``.

        Raises:
            UpstreamNotFound: The root product is unknown
            UpstreamUnavailable: The catalog could not answer the similar-ids lookup
        """
        cached = self.cache.get(root_id)
        if cached is not None:
            return cached

        task = self._inflight.get(root_id)
        if task is None:
            task = asyncio.create_task(self._load(root_id))
            self._inflight[root_id] = task
            task.add_done_callback(lambda t, key=root_id: self._finish(key, t))

        # A cancelled caller must not cancel the aggregation other callers share
        return await asyncio.shield(task)

    async def _load(self, root_id: str) -> AggregatedResult:
        result = await self.aggregator.get_similar_products(root_id)
        self.cache.put(root_id, result)
        return result

    def _finish(self, root_id: str, task: "asyncio.Task[AggregatedResult]") -> None:
        if self._inflight.get(root_id) is task:
            del self._inflight[root_id]
        if not task.cancelled():
            # Mark the exception retrieved even if every caller went away
            task.exception()

    @property
    def inflight(self) -> int:
        """Number of aggregations currently running."""
        return len(self._inflight)
