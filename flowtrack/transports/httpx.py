"""HTTP transport backed by httpx."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..constants import DEFAULT_TIMEOUT
from ..errors import TransportError
from .base import BaseTransport, TransportResponse

logger = logging.getLogger(__name__)


class HttpxTransport(BaseTransport):
    """Talk to the flow query service over HTTP.

    When used as an async context manager (or after :meth:`connect`) a single
    ``httpx.AsyncClient`` is shared across requests. Otherwise each request
    opens and closes its own client, so an abandoned request leaves nothing
    behind.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def connect(self) -> None:
        if self._client is None:
            self._client = self._make_client()

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        target: str,
        json: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        url = "/" + target.lstrip("/")
        kwargs: Dict[str, Any] = {
            "timeout": timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
        }
        if json is not None:
            kwargs["json"] = json

        try:
            if self._client is not None:
                response = await self._client.request(method, url, **kwargs)
            else:
                async with self._make_client() as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error(f"{method} {url} timed out: {exc}")
            raise TransportError(f"Request timed out: {method} {url}") from exc
        except httpx.HTTPError as exc:
            logger.error(f"{method} {url} failed: {exc}")
            raise TransportError(f"Network error: {exc}") from exc

        return TransportResponse(status_code=response.status_code, text=response.text)
