"""FastAPI mock of the upstream product catalog."""

import asyncio
import os
import random
from typing import Dict, Iterable, List, Optional

from fastapi import FastAPI, HTTPException


DEFAULT_CATALOG: Dict[str, Dict] = {
    "1": {"id": "1", "name": "Shirt", "price": 9.99, "availability": True},
    "2": {"id": "2", "name": "Dress", "price": 29.99, "availability": True},
    "3": {"id": "3", "name": "Blazer", "price": 39.99, "availability": False},
    "4": {"id": "4", "name": "Boots", "price": 49.99, "availability": True},
    "5": {"id": "5", "name": "Leather Jacket", "price": 89.99, "availability": False},
    "6": {"id": "6", "name": "Trousers", "price": 19.99, "availability": True},
}

DEFAULT_SIMILAR: Dict[str, List[str]] = {
    "1": ["2", "3", "4"],
    "2": ["3", "100", "1000"],
    "3": ["100", "1000", "10000"],
    "4": ["1", "2", "5"],
    "5": ["1", "2", "6"],
    "99": [],
}


def create_mock_catalog_app(
    catalog: Optional[Dict[str, Dict]] = None,
    similar: Optional[Dict[str, List[str]]] = None,
    random_seed: Optional[int] = None,
    error_rate: float = 0.0,
    extra_latency_ms: int = 0,
    failing_ids: Iterable[str] = (),
    name: str = "mock-catalog"
) -> FastAPI:
    """
    Create a FastAPI mock catalog with configurable behavior.

    Args:
        catalog: Product details keyed by id
        similar: Similar ids keyed by root id
        random_seed: Seed for deterministic error injection
        error_rate: Probability of returning 5xx errors (0.0-1.0)
        extra_latency_ms: Additional latency in milliseconds
        failing_ids: Product ids whose detail endpoint always answers 500
        name: Server name reported by /health

    Returns:
        FastAPI application
    """
    app = FastAPI(title=f"Mock Catalog - {name}")
    catalog = DEFAULT_CATALOG if catalog is None else catalog
    similar = DEFAULT_SIMILAR if similar is None else similar
    failing = frozenset(failing_ids)
    rng = random.Random(random_seed)

    async def simulate_conditions() -> None:
        if extra_latency_ms > 0:
            await asyncio.sleep(extra_latency_ms / 1000.0)

        if rng.random() < error_rate:
            error_code = rng.choice([500, 502, 503])
            raise HTTPException(status_code=error_code, detail="Simulated error")

    @app.get("/product/{product_id}/similarids")
    async def get_similar_ids(product_id: str):
        """Similar product ids, most similar first."""
        await simulate_conditions()
        if product_id not in similar:
            raise HTTPException(status_code=404, detail="Product not found")
        return similar[product_id]

    @app.get("/product/{product_id}")
    async def get_product(product_id: str):
        """Product detail."""
        await simulate_conditions()
        if product_id in failing:
            raise HTTPException(status_code=500, detail="Simulated failure")
        if product_id not in catalog:
            raise HTTPException(status_code=404, detail="Product not found")
        return catalog[product_id]

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "server": name}

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads MOCK_ERROR_RATE, MOCK_LATENCY_MS, MOCK_SEED and MOCK_FAILING_IDS
    (comma separated) from the environment.
    """
    failing = os.getenv("MOCK_FAILING_IDS", "")
    seed = os.getenv("MOCK_SEED")
    return create_mock_catalog_app(
        random_seed=int(seed) if seed else None,
        error_rate=float(os.getenv("MOCK_ERROR_RATE", 0.0)),
        extra_latency_ms=int(os.getenv("MOCK_LATENCY_MS", 0)),
        failing_ids=[i.strip() for i in failing.split(",") if i.strip()]
    )
