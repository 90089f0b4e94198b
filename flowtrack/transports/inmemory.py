"""In-memory transport for testing."""

from __future__ import annotations

import json as jsonlib
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from .base import BaseTransport, TransportResponse


class RecordedRequest(NamedTuple):
    """A request as seen by the transport."""

    method: str
    target: str
    json: Optional[dict]
    timeout: Optional[float]


class InMemoryTransport(BaseTransport):
    """Serve canned responses keyed by method and exact request target.

    Unknown targets get a 404 with a ``message`` body, like the real service.
    """

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], TransportResponse] = {}
        self.requests: List[RecordedRequest] = []

    def add_response(
        self, method: str, target: str, body: Any = None, status_code: int = 200
    ) -> None:
        """Register ``body`` (JSON-encoded unless already a string) for a route."""
        text = body if isinstance(body, str) else jsonlib.dumps(body)
        self._routes[(method.upper(), target)] = TransportResponse(
            status_code=status_code, text=text
        )

    async def request(
        self,
        method: str,
        target: str,
        json: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        self.requests.append(RecordedRequest(method.upper(), target, json, timeout))
        response = self._routes.get((method.upper(), target))
        if response is None:
            return TransportResponse(
                status_code=404, text=jsonlib.dumps({"message": "Not found"})
            )
        return response
