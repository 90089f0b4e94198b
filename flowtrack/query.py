"""Listing query parameters shared by every flow family."""

from __future__ import annotations

from datetime import date
from typing import Any, List, Optional, Tuple, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .constants import DEFAULT_LIMIT, DEFAULT_PAGE
from .errors import ValidationError


class FlowQuery(BaseModel):
    """Pagination, search and date range for a flow listing.

    The upper bound on ``limit`` is server-controlled and is not enforced
    here.
    """

    model_config = ConfigDict(frozen=True)

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            loc = error.get("loc") or ()
            field = str(loc[0]) if loc else "date_range"
            message = error.get("msg", "invalid value").removeprefix("Value error, ")
            raise ValidationError(f"{field}: {message}", field=field) from exc

    @field_validator("page", "limit", mode="before")
    @classmethod
    def _positive(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("must be an integer")
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("search", mode="before")
    @classmethod
    def _normalize_search(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("must be a string")
        v = v.strip()
        return v or None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _iso_date(cls, v: Any) -> Optional[date]:
        if v is None or isinstance(v, date):
            return v
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                return date.fromisoformat(v.strip())
            except ValueError:
                raise ValueError(f"'{v}' is not an ISO 8601 date") from None
        raise ValueError("must be an ISO 8601 date string")

    @model_validator(mode="after")
    def _ordered_range(self) -> "FlowQuery":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date.isoformat()} is after "
                f"end_date {self.end_date.isoformat()}"
            )
        return self

    @classmethod
    def create(
        cls,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: Optional[str] = None,
        start_date: Union[str, date, None] = None,
        end_date: Union[str, date, None] = None,
    ) -> "FlowQuery":
        """Build a query, raising :class:`ValidationError` on bad input."""
        return cls(
            page=page,
            limit=limit,
            search=search,
            start_date=start_date,
            end_date=end_date,
        )

    def to_params(self) -> List[Tuple[str, str]]:
        """Query parameters in their fixed order."""
        params = [("page", str(self.page)), ("limit", str(self.limit))]
        if self.search:
            params.append(("search", self.search))
        if self.start_date:
            params.append(("start_date", self.start_date.isoformat()))
        if self.end_date:
            params.append(("end_date", self.end_date.isoformat()))
        return params

    def to_query_string(self) -> str:
        return urlencode(self.to_params())
