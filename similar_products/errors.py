"""Exceptions raised by the similar products core."""

from typing import Optional


class SimilarProductsError(Exception):
    """Base exception for the similar products service."""


class UpstreamError(SimilarProductsError):
    """A catalog call did not produce a usable answer."""

    def __init__(self, message: str, operation: str, product_id: str):
        self.operation = operation
        self.product_id = product_id
        super().__init__(message)


class UpstreamNotFound(UpstreamError):
    """The catalog reported that the product does not exist."""

    def __init__(self, product_id: str, operation: str = "similar_ids"):
        super().__init__(
            f"Product not found with ID: {product_id}",
            operation=operation,
            product_id=product_id,
        )


class UpstreamUnavailable(UpstreamError):
    """The catalog could not be reached, timed out, or kept failing."""

    def __init__(
        self,
        product_id: str,
        operation: str = "similar_ids",
        reason: Optional[str] = None,
    ):
        self.reason = reason
        message = f"Catalog unavailable for product {product_id} ({operation})"
        if reason:
            message += f": {reason}"
        super().__init__(message, operation=operation, product_id=product_id)


class CircuitOpenError(UpstreamUnavailable):
    """Circuit breaker rejected the call without contacting the catalog."""

    def __init__(self, product_id: str, operation: str):
        super().__init__(product_id, operation=operation, reason="circuit breaker open")
