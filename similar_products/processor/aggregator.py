"""Fan-out/fan-in aggregation of similar product details."""

import asyncio
import logging
import time
from typing import List, Optional

from similar_products.fetcher.catalog_client import CatalogClient
from similar_products.models.data_models import AggregatedResult, ProductDetail


class SimilarProductsAggregator:
    """
    Resolves a root product into the details of its similar products.

    The similar-ids lookup completes before any detail fetch starts. Detail
    fetches then run concurrently, at most ``worker_pool_size`` at a time, and
    a failure in one never affects its siblings: failed or unknown products are
    simply left out. Results keep the order of the similar-ids response.
    """

    def __init__(
        self,
        client: CatalogClient,
        worker_pool_size: int = 10,
        fanout_timeout: Optional[float] = None,
        logger: Optional['StructuredLogger'] = None
    ):
        """
        Initialize aggregator.

        Args:
            client: Resilient catalog client
            worker_pool_size: Maximum concurrent detail fetches per request
            fanout_timeout: Optional deadline for the detail fan-out; when it
                elapses, pending fetches are cancelled and the details that
                already arrived are returned
            logger: Optional structured logger
        """
        if worker_pool_size <= 0:
            raise ValueError(f"worker_pool_size must be positive, got: {worker_pool_size}")
        self.client = client
        self.worker_pool_size = worker_pool_size
        self.fanout_timeout = fanout_timeout
        self.logger = logger

    async def get_similar_products(self, root_id: str) -> AggregatedResult:
        """
        Aggregate the details of every product similar to ``root_id``.

        Raises:
            UpstreamNotFound: The root product is unknown
            UpstreamUnavailable: The similar-ids lookup could not complete
        """
        similar_ids = await self.client.list_similar_ids(root_id)

        if not similar_ids:
            return AggregatedResult(root_id=root_id, products=(), requested=0)

        start = time.perf_counter()
        if self.logger:
            self.logger.fanout_start(product_id=root_id, requested=len(similar_ids))

        products = await self._fetch_details(root_id, similar_ids)

        if self.logger:
            self.logger.fanout_complete(
                product_id=root_id,
                requested=len(similar_ids),
                resolved=len(products),
                elapsed_ms=(time.perf_counter() - start) * 1000
            )

        return AggregatedResult(root_id=root_id, products=tuple(products), requested=len(similar_ids))

    async def _fetch_details(self, root_id: str, similar_ids: List[str]) -> List[ProductDetail]:
        """Fetch all details concurrently and collect those that resolved, in input order."""
        semaphore = asyncio.Semaphore(self.worker_pool_size)

        async def fetch_one(product_id: str) -> Optional[ProductDetail]:
            async with semaphore:
                return await self.client.get_detail(product_id)

        tasks = [asyncio.create_task(fetch_one(product_id)) for product_id in similar_ids]

        try:
            done, pending = await asyncio.wait(tasks, timeout=self.fanout_timeout)
        finally:
            # Covers cancellation of the whole request as well as the deadline
            for task in tasks:
                if not task.done():
                    task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            if self.logger:
                self.logger.log(
                    "fanout_timeout",
                    level=logging.WARNING,
                    product_id=root_id,
                    timeout=self.fanout_timeout,
                    cancelled=len(pending)
                )

        products = []
        for product_id, task in zip(similar_ids, tasks):
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                if self.logger:
                    self.logger.detail_dropped(root_id=root_id, product_id=product_id, error=repr(error))
                continue
            detail = task.result()
            if detail is not None:
                products.append(detail)

        return products
