"""Resilient access to the upstream product catalog."""

from .catalog_client import CatalogClient
from .circuit_breaker import CircuitBreaker
from .retry_handler import RetryHandler

__all__ = ["CatalogClient", "CircuitBreaker", "RetryHandler"]
