"""Transport factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FlowtrackConfig, load_config
from .base import BaseTransport, TransportResponse
from .inmemory import InMemoryTransport, RecordedRequest


def get_transport(
    backend: Optional[str] = None, config: Optional[FlowtrackConfig] = None
) -> BaseTransport:
    """Factory function to get the configured transport."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("FLOWTRACK_TRANSPORT")
        or config.transport.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryTransport()
    elif backend == "httpx":
        from .httpx import HttpxTransport

        return HttpxTransport(
            base_url=config.api.base_url,
            token=config.api.token,
            timeout=config.api.timeout,
        )
    else:
        raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = [
    "BaseTransport",
    "InMemoryTransport",
    "RecordedRequest",
    "TransportResponse",
    "get_transport",
]
