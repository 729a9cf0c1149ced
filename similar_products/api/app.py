"""HTTP API exposing similar product lookups."""

import asyncio
import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from similar_products import __version__
from similar_products.errors import UpstreamNotFound, UpstreamUnavailable
from similar_products.models.config import ServiceConfig
from similar_products.pipeline.orchestrator import ServiceOrchestrator
from similar_products.pipeline.output import JSONOutputFormatter


PRODUCT_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


def _error_response(status: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"status": status, "error": error, "message": message}
    )


def create_app(
    config: Optional[ServiceConfig] = None,
    orchestrator: Optional[ServiceOrchestrator] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Service configuration (defaults are used when omitted)
        orchestrator: Pre-built orchestrator, e.g. wired to a mock transport in tests

    Returns:
        FastAPI application whose lifespan opens and closes the catalog connection pool
    """
    orchestrator = orchestrator or ServiceOrchestrator(config or ServiceConfig())
    formatter = JSONOutputFormatter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with orchestrator:
            yield

    app = FastAPI(title="Similar Products API", version=__version__, lifespan=lifespan)
    app.state.orchestrator = orchestrator

    async def not_found_handler(request: Request, exc: UpstreamNotFound) -> JSONResponse:
        return _error_response(404, "Not Found", str(exc))

    async def unavailable_handler(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
        return _error_response(503, "Service Unavailable", str(exc))

    async def timeout_handler(request: Request, exc: asyncio.TimeoutError) -> JSONResponse:
        return _error_response(
            503,
            "Service Unavailable",
            f"Request timed out after {orchestrator.config.total_timeout}s"
        )

    app.add_exception_handler(UpstreamNotFound, not_found_handler)
    app.add_exception_handler(UpstreamUnavailable, unavailable_handler)
    app.add_exception_handler(asyncio.TimeoutError, timeout_handler)

    @app.get("/product/{product_id}/similar")
    async def similar_products(product_id: str):
        """Similar products of ``product_id``, in the order the catalog ranks them."""
        if not PRODUCT_ID_PATTERN.fullmatch(product_id):
            return _error_response(400, "Bad Request", f"Invalid product ID: {product_id}")

        result = await orchestrator.get_similar_products(product_id)
        return formatter.format_products(result)

    @app.get("/health")
    async def health():
        return orchestrator.health()

    return app
