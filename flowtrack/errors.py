"""Error taxonomy for flowtrack."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class FlowtrackError(Exception):
    """Base class for all flowtrack errors."""


class ValidationError(FlowtrackError, ValueError):
    """Caller supplied parameters are malformed. Nothing was sent upstream."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class TransportError(FlowtrackError):
    """Network failure or non-2xx status from the query service."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def status_class(self) -> Optional[str]:
        """Return ``"4xx"``/``"5xx"`` style class, or ``None`` without a response."""
        if self.status_code is None:
            return None
        return f"{self.status_code // 100}xx"


class NotFoundError(FlowtrackError):
    """The service reported that the requested resource does not exist."""

    def __init__(self, message: str, target: str = "") -> None:
        super().__init__(message)
        self.target = target


class DecodeError(FlowtrackError):
    """A 2xx response body does not match the expected shape."""


class RecordValidationError(DecodeError):
    """A flow record payload violates the record model."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.reason = message


class IntegrityWarning(BaseModel):
    """Non-fatal cross-field inconsistency found in well-formed data."""

    code: str
    message: str
    tracking: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        prefix = f"[{self.tracking}] " if self.tracking else ""
        return f"{prefix}{self.code}: {self.message}"
