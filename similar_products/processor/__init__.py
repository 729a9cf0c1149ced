"""Aggregation, caching and the cached lookup service."""

from .aggregator import SimilarProductsAggregator
from .result_cache import ResultCache
from .service import SimilarProductsService

__all__ = ["ResultCache", "SimilarProductsAggregator", "SimilarProductsService"]
