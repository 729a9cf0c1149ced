"""Pooled async HTTP access to the catalog service."""

from typing import Optional

import httpx

from similar_products import __version__


DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": f"similar-products/{__version__}",
}


class AsyncHTTPClient:
    """
    One pooled ``httpx.AsyncClient`` bound to the catalog base URL.

    All catalog requests of a process share this pool, so ``max_connections``
    caps the sockets opened towards the catalog no matter how many fan-outs
    run at once. Connect and read timeouts apply per request on top of the
    attempt deadline enforced by the caller.
    """

    def __init__(
        self,
        base_url: str = "",
        connect_timeout: float = 2.0,
        read_timeout: float = 5.0,
        write_timeout: float = 5.0,
        pool_timeout: float = 5.0,
        max_connections: int = 50,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Catalog base URL; request paths are resolved against it
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            write_timeout: Write timeout in seconds
            pool_timeout: Seconds to wait for a free pooled connection
            max_connections: Upper bound on concurrent connections
            transport: Replaces the network, e.g. httpx.MockTransport in tests
        """
        self.base_url = base_url
        self.timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=write_timeout,
            pool=pool_timeout
        )
        self.limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections
        )
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AsyncHTTPClient":
        """Build a client from a ServiceConfig."""
        return cls(
            base_url=config.upstream_base_url,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_connections=config.max_connections,
            transport=transport
        )

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=self.timeout,
            limits=self.limits,
            transport=self.transport
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, path: str) -> httpx.Response:
        """
        GET a catalog path.

        Raises:
            RuntimeError: The client is used outside ``async with``
            httpx.TransportError: The request could not be completed
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        return await self._client.get(path)
