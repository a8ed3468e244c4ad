"""Shared HTTPX plumbing for the backend clients."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class BackendClient:
    """Owns one ``httpx.AsyncClient`` bound to the backend base URL.

    One instance is created per canvas session and reused for every call.

    Args:
        base_url: Backend URL, e.g. ``http://localhost:8080``
        timeout: Request timeout in seconds
        transport: Optional custom transport (``httpx.MockTransport`` in tests)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        logger.debug(f"[{type(self).__name__}] Initialized with base URL: {self.base_url}")

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def aclose(self) -> None:
        """Close the underlying HTTP client and release connections."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
