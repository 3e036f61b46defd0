"""
HttpTransport - Shared httpx client used by the service clients.

One attempt is one HTTP exchange. Non-2xx responses raise
httpx.HTTPStatusError, which the ErrorClassifier turns into a typed failure.
"""

from typing import Any

import httpx
from loguru import logger

from recipe_manager.services.outcomes import CallContext

REQUEST_ID_HEADER = "X-Request-ID"


class HttpTransport:
    """
    Usage:
        transport = HttpTransport(connect_timeout=5.0, read_timeout=10.0)
        data = await transport.get_json(f"{base_url}/recipes/123/shopping-info", context)
        await transport.close()
    """

    def __init__(
        self,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._http_client = client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._http_client

    async def request(
        self,
        method: str,
        url: str,
        context: CallContext | None = None,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform one request, raising httpx.HTTPStatusError on non-2xx."""
        client = await self._get_http_client()
        request_headers = dict(headers or {})
        if context is not None:
            request_headers[REQUEST_ID_HEADER] = context.correlation_id

        logger.debug(f"{method} {url}")
        response = await client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers=request_headers,
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response

    async def get_json(
        self,
        url: str,
        context: CallContext | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.request("GET", url, context, params=params)
        return response.json()

    async def post_json(
        self,
        url: str,
        payload: Any,
        context: CallContext | None = None,
    ) -> Any:
        response = await self.request("POST", url, context, json_data=payload)
        if not response.content:
            return None
        return response.json()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
