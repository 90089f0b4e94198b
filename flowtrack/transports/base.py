"""Base transport interface for the flow query service."""

from __future__ import annotations

import abc
from typing import Any, Optional

from pydantic import BaseModel


class TransportResponse(BaseModel):
    """Raw status and body returned by a transport."""

    status_code: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class BaseTransport(metaclass=abc.ABCMeta):
    """Abstract transport issuing one HTTP-shaped request at a time.

    Implementations raise :class:`~flowtrack.errors.TransportError` when no
    response could be obtained at all (unreachable host, timeout). Any
    response that did arrive is returned as is, whatever its status.
    """

    async def connect(self) -> None:
        """Open long-lived resources (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Release long-lived resources (no-op by default)."""
        pass

    async def __aenter__(self) -> "BaseTransport":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    @abc.abstractmethod
    async def request(
        self,
        method: str,
        target: str,
        json: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        """Send ``method`` to ``target`` (path plus query string).

        Args:
            method: HTTP method.
            target: Path relative to the service root, query string included.
            json: Optional JSON request body.
            timeout: Caller supplied timeout in seconds. ``None`` means the
                transport's own default.
        """
        raise NotImplementedError
