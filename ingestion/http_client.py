"""
Streaming HTTP client for remote JSON sources.

Responses are opened in streaming mode so the body is consumed chunk by
chunk and never held in memory as a whole.
"""

import httpx
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from core.config import settings
from core.exceptions import SourceFetchError


class HttpClientService:
    """
    Thin wrapper over ``httpx.AsyncClient`` that yields streaming responses.

    The client is created lazily and shared by every source of a run;
    pass ``client`` to reuse an existing one (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._logger = logger or logging.getLogger(__name__)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
            )
        return self._client

    @asynccontextmanager
    async def get_stream(self, url: str) -> AsyncIterator[httpx.Response]:
        """
        Open ``url`` and yield the response with its body still unread.

        Raises:
            SourceFetchError: If the connection fails or the status is not 2xx
        """
        request = self.client.build_request("GET", url)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise SourceFetchError(
                f"Failed to open stream for {url}",
                context={"url": url},
                original_exception=e
            )

        try:
            if not response.is_success:
                raise SourceFetchError(
                    f"Unexpected status {response.status_code} for {url}",
                    context={"url": url, "status_code": response.status_code}
                )
            self._logger.debug(f"Streaming {url} (status {response.status_code})")
            yield response
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this service created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
