"""Structured logging for service monitoring."""

import json
import logging
from typing import Optional


class StructuredLogger:
    """Structured logger with uniform schema."""

    def __init__(self, name: str = "similar_products", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """
        Log structured event.

        Standard keys: event, operation, product_id, status, attempt, elapsed_ms,
                      cb_state, requested, resolved, missing
        """
        log_data = {"event": event, **kwargs}
        self.logger.log(level, json.dumps(log_data, default=str))

    def fetch_start(self, operation: str, product_id: str) -> None:
        self.log("fetch_start", level=logging.DEBUG, operation=operation, product_id=product_id)

    def fetch_success(self, operation: str, product_id: str, elapsed_ms: float) -> None:
        self.log("fetch_success", level=logging.DEBUG, operation=operation,
                 product_id=product_id, elapsed_ms=round(elapsed_ms, 2))

    def fetch_error(self, operation: str, product_id: str, status: Optional[int], error: str, attempt: int) -> None:
        self.log("fetch_error", level=logging.WARNING, operation=operation, product_id=product_id,
                 status=status, error=error, attempt=attempt)

    def circuit_breaker_state(self, operation: str, state: str) -> None:
        self.log("circuit_breaker", level=logging.WARNING, operation=operation, cb_state=state)

    def cache_hit(self, product_id: str) -> None:
        self.log("cache_hit", level=logging.DEBUG, product_id=product_id)

    def cache_miss(self, product_id: str) -> None:
        self.log("cache_miss", level=logging.DEBUG, product_id=product_id)

    def fanout_start(self, product_id: str, requested: int) -> None:
        self.log("fanout_start", product_id=product_id, requested=requested)

    def fanout_complete(self, product_id: str, requested: int, resolved: int, elapsed_ms: float) -> None:
        self.log("fanout_complete", product_id=product_id, requested=requested, resolved=resolved,
                 missing=requested - resolved, elapsed_ms=round(elapsed_ms, 2))

    def detail_dropped(self, root_id: str, product_id: str, error: str) -> None:
        self.log("detail_dropped", level=logging.WARNING, root_id=root_id, product_id=product_id, error=error)
