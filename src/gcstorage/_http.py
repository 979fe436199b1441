"""
HTTP client utilities for the gcstorage SDK
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class HttpClient:
    """
    HTTP client wrapper with connection pooling and retry logic.

    Only connection-level failures (``httpx.RequestError``) are retried, with
    exponential backoff. Requests with a streamed body are sent once, as the
    body cannot be replayed.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=100),
            transport=transport,
        )

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a GET request with retry logic."""
        return await self._request("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict] = None,
        content: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a POST request; retried only when the body is not streamed."""
        return await self._request(
            "POST",
            url,
            params=params,
            json=json,
            content=content,
            headers=headers,
        )

    async def put(
        self,
        url: str,
        content: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a PUT request; retried only when the body is not streamed."""
        return await self._request("PUT", url, content=content, headers=headers)

    async def patch(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a PATCH request with retry logic."""
        return await self._request("PATCH", url, params=params, json=json, headers=headers)

    async def delete(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a DELETE request with retry logic."""
        return await self._request("DELETE", url, headers=headers)

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> AsyncIterator[httpx.Response]:
        """Send a request and expose the response body as a stream."""
        async with self._client.stream(method, url, params=params, headers=headers) as response:
            yield response

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[Any] = None,
        **kwargs
    ) -> httpx.Response:
        """Make HTTP request with exponential backoff retry logic."""
        replayable = content is None or isinstance(content, (bytes, bytearray))
        attempts = max(self.max_retries, 1) if replayable else 1
        for attempt in range(attempts):
            try:
                return await self._client.request(
                    method, url, headers=headers, content=content, **kwargs
                )
            except httpx.RequestError as ex:
                if attempt < attempts - 1:
                    wait_time = min(1000 * (2 ** attempt), 10000) / 1000
                    logger.debug(
                        "[GcStorage][Retry] method=%s url=%s attempt=%s error=%s",
                        method,
                        url,
                        attempt + 1,
                        ex,
                    )
                    await asyncio.sleep(wait_time)
                else:
                    raise

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
