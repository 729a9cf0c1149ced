"""Resilient client for the upstream product catalog."""

import asyncio
import logging
import time
from typing import Any, Callable, List, Optional
from urllib.parse import quote

import httpx

from similar_products.errors import CircuitOpenError, UpstreamNotFound, UpstreamUnavailable
from similar_products.fetcher.circuit_breaker import CircuitBreaker
from similar_products.fetcher.http_client import AsyncHTTPClient
from similar_products.fetcher.retry_handler import RetryHandler
from similar_products.models.data_models import FetchOutcome, HalfOpenToken, ProductDetail


SIMILAR_IDS = "similar_ids"
PRODUCT_DETAIL = "product_detail"


def parse_similar_ids(payload: Any) -> List[str]:
    """Validate a similar-ids payload and normalise ids to strings."""
    if not isinstance(payload, list):
        raise ValueError(f"expected a list of ids, got {type(payload).__name__}")

    ids = []
    for item in payload:
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            raise ValueError(f"invalid product id: {item!r}")
        product_id = str(item).strip()
        if not product_id:
            raise ValueError("empty product id")
        ids.append(product_id)
    return ids


class CatalogClient:
    """
    Catalog client with resilience patterns.

    Responsibilities:
    - Resolve a product to its similar product ids
    - Resolve a product id to its detail record
    - Bound every attempt with a timeout
    - Retry transient failures with exponential backoff
    - Consult a per-operation circuit breaker before every attempt

    The two operations fall back differently: a failed similar-ids lookup
    raises, a failed detail lookup yields ``None``.
    """

    def __init__(
        self,
        http_client: AsyncHTTPClient,
        circuit_breaker: CircuitBreaker,
        retry_handler: Optional[RetryHandler] = None,
        request_timeout: float = 6.0,
        logger: Optional['StructuredLogger'] = None
    ):
        """
        Initialize client with resilience components.

        Args:
            http_client: Makes HTTP requests against the catalog base URL
            circuit_breaker: Registry holding one circuit per operation
            retry_handler: Retry classification and backoff policy
            request_timeout: Upper bound for a single attempt in seconds
            logger: Optional structured logger for telemetry
        """
        self.http_client = http_client
        self.circuit_breaker = circuit_breaker
        self.retry_handler = retry_handler or RetryHandler()
        self.request_timeout = request_timeout
        self.logger = logger

    async def list_similar_ids(self, product_id: str) -> List[str]:
        """
        Fetch the ordered similar product ids for a root product.

        Raises:
            UpstreamNotFound: The catalog does not know the product
            UpstreamUnavailable: Breaker open, retries exhausted or unusable response
        """
        outcome = await self._call_with_resilience(
            SIMILAR_IDS,
            product_id,
            f"/product/{quote(product_id, safe='')}/similarids",
            parse_similar_ids
        )

        if outcome.not_found:
            raise UpstreamNotFound(product_id, operation=SIMILAR_IDS)
        if outcome.rejected:
            raise CircuitOpenError(product_id, operation=SIMILAR_IDS)
        if outcome.error is not None:
            raise UpstreamUnavailable(product_id, operation=SIMILAR_IDS, reason=outcome.error)
        return outcome.payload

    async def get_detail(self, product_id: str) -> Optional[ProductDetail]:
        """
        Fetch the detail record of a product.

        Returns:
            The ProductDetail, or None when the product is unknown or could not
            be fetched. Never raises except on cancellation.
        """
        try:
            outcome = await self._call_with_resilience(
                PRODUCT_DETAIL,
                product_id,
                f"/product/{quote(product_id, safe='')}",
                ProductDetail.model_validate
            )
        except Exception as e:
            self._log_fallback(product_id, f"unexpected error: {e!r}")
            return None

        if outcome.ok:
            return outcome.payload
        self._log_fallback(product_id, "not found" if outcome.not_found else outcome.error)
        return None

    async def _call_with_resilience(
        self,
        operation: str,
        product_id: str,
        path: str,
        parse: Callable[[Any], Any]
    ) -> FetchOutcome:
        """
        Run one logical catalog call with breaker, timeout and retries.

        Returns:
            FetchOutcome with ``payload`` on success, ``not_found`` on 404,
            ``rejected`` when the breaker refused an attempt, or ``error``
            when the last attempt failed
        """
        last = FetchOutcome()

        if self.logger:
            self.logger.fetch_start(operation=operation, product_id=product_id)

        for attempt in range(self.retry_handler.max_attempts):
            permit = self.circuit_breaker.should_allow(operation)
            if permit is False:
                return FetchOutcome(
                    error="circuit breaker open",
                    status_code=last.status_code,
                    rejected=True,
                    attempts=attempt
                )
            token = permit if isinstance(permit, HalfOpenToken) else None
            start = time.perf_counter()
            response = None

            try:
                response = await asyncio.wait_for(
                    self.http_client.get(path),
                    timeout=self.request_timeout
                )

                if response.status_code == 404:
                    # Definitive answer: upstream is healthy, nothing to retry
                    self.circuit_breaker.record_success(operation, token=token)
                    return FetchOutcome(not_found=True, status_code=404, attempts=attempt + 1)

                response.raise_for_status()
                payload = parse(response.json())

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                is_retryable = self.retry_handler.is_retryable(status_code=status_code)
                self.circuit_breaker.record_failure(operation, retryable=is_retryable, token=token)
                last = FetchOutcome(
                    error=f"HTTP {status_code}",
                    status_code=status_code,
                    retryable=is_retryable,
                    attempts=attempt + 1
                )

            except (asyncio.TimeoutError, httpx.TimeoutException):
                self.circuit_breaker.record_failure(operation, retryable=True, token=token)
                last = FetchOutcome(error="timeout", retryable=True, attempts=attempt + 1)

            except httpx.TransportError as e:
                self.circuit_breaker.record_failure(operation, retryable=True, token=token)
                last = FetchOutcome(
                    error=f"transport error: {e.__class__.__name__}",
                    retryable=True,
                    attempts=attempt + 1
                )

            except httpx.HTTPError as e:
                # Decoding failures, redirect loops and other request errors
                self.circuit_breaker.record_failure(operation, retryable=True, token=token)
                last = FetchOutcome(
                    error=f"request error: {e.__class__.__name__}",
                    retryable=True,
                    attempts=attempt + 1
                )

            except ValueError as e:
                # Malformed JSON or a payload that fails validation
                self.circuit_breaker.record_failure(operation, retryable=False, token=token)
                last = FetchOutcome(
                    error=f"invalid payload: {e}",
                    status_code=response.status_code if response is not None else None,
                    attempts=attempt + 1
                )

            except BaseException:
                # Cancellation or an unclassified error: no outcome is recorded, the trial permit goes back
                if token is not None:
                    self.circuit_breaker.release(operation, token)
                raise

            else:
                self.circuit_breaker.record_success(operation, token=token)
                if self.logger:
                    self.logger.fetch_success(
                        operation=operation,
                        product_id=product_id,
                        elapsed_ms=(time.perf_counter() - start) * 1000
                    )
                return FetchOutcome(payload=payload, status_code=response.status_code, attempts=attempt + 1)

            if self.logger:
                self.logger.fetch_error(
                    operation=operation,
                    product_id=product_id,
                    status=last.status_code,
                    error=last.error,
                    attempt=attempt
                )

            if not last.retryable:
                return last

            if attempt < self.retry_handler.max_attempts - 1:
                await self.retry_handler.backoff(attempt)

        return last

    def _log_fallback(self, product_id: str, reason: Optional[str]) -> None:
        if self.logger:
            self.logger.log(
                "fallback",
                level=logging.WARNING,
                operation=PRODUCT_DETAIL,
                product_id=product_id,
                reason=reason
            )
