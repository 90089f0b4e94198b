"""Retrieval gateway between flow queries and the query service."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, List, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel, Field

from .charts import ChartResult, check_chart, parse_chart_series
from .contracts import FlowRecord, check_stage_order, parse_flow_record
from .errors import (
    DecodeError,
    IntegrityWarning,
    NotFoundError,
    RecordValidationError,
    TransportError,
    ValidationError,
)
from .families import FamilyDescriptor
from .query import FlowQuery
from .transports import BaseTransport, TransportResponse

logger = logging.getLogger(__name__)


class FlowPage(BaseModel):
    """One page of flow records, in the order the service returned them."""

    family: str
    items: List[FlowRecord] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    warnings: List[IntegrityWarning] = Field(default_factory=list)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


class FlowResult(BaseModel):
    """A single flow record plus integrity warnings found on receipt."""

    record: FlowRecord
    warnings: List[IntegrityWarning] = Field(default_factory=list)


def _error_message(response: TransportResponse) -> str:
    try:
        body = json.loads(response.text) if response.text else {}
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return "Request failed"


def _pagination_int(container: dict, key: str) -> int:
    value = container.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(f"pagination field '{key}' missing or not a non-negative integer")
    return value


class FlowGateway:
    """Issue listing, lookup, create and chart requests for one flow family.

    The transport is injected, and nothing is cached between calls. Every
    method is a coroutine and can be cancelled by its caller.

    Usage:
        async with HttpxTransport(base_url) as transport:
            gateway = FlowGateway(transport, RIBBON)
            page = await gateway.list_flows(FlowQuery.create(page=2, limit=5))
    """

    def __init__(self, transport: BaseTransport, family: FamilyDescriptor) -> None:
        self._transport = transport
        self.family = family

    # ------------------------------------------------------------------
    def list_target(self, query: Optional[FlowQuery] = None) -> str:
        """Request target for a listing; stable for equal queries."""
        query = query or FlowQuery()
        return f"/{self.family.resource}?{query.to_query_string()}"

    def item_target(self, flow_id: Union[int, str]) -> str:
        flow_id = str(flow_id).strip()
        if not flow_id:
            raise ValidationError("flow id must not be empty", field="flow_id")
        return f"/{self.family.resource}/{quote(flow_id, safe='')}"

    def chart_target(self) -> str:
        return f"/{self.family.resource}/chart"

    # ------------------------------------------------------------------
    async def _send(
        self,
        method: str,
        target: str,
        payload: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Issue one request and return the decoded response envelope."""
        logger.debug(f"{method} {target} family={self.family.name}")
        response = await self._transport.request(
            method, target, json=payload, timeout=timeout
        )

        if response.status_code == 404:
            raise NotFoundError(_error_message(response), target=target)
        if not response.ok:
            message = _error_message(response)
            logger.error(
                f"{method} {target} failed with status {response.status_code}: {message}"
            )
            raise TransportError(message, response.status_code, response.text)

        try:
            body = json.loads(response.text)
        except ValueError as exc:
            raise DecodeError(f"{method} {target} returned a non-JSON body") from exc
        if not isinstance(body, dict) or "data" not in body:
            raise DecodeError(f"{method} {target} response has no 'data' member")
        if body.get("success") is False:
            raise DecodeError(
                f"{method} {target} reported failure: {body.get('message', '')}"
            )
        return body

    def _record(self, raw: Any, field_prefix: str = "data") -> FlowRecord:
        try:
            return parse_flow_record(raw, self.family)
        except RecordValidationError as exc:
            raise RecordValidationError(
                exc.reason, field=f"{field_prefix}.{exc.field}"
            ) from exc

    def _result(self, body: dict) -> FlowResult:
        record = self._record(body["data"])
        return FlowResult(record=record, warnings=check_stage_order(record))

    # ------------------------------------------------------------------
    async def list_flows(
        self, query: Optional[FlowQuery] = None, *, timeout: Optional[float] = None
    ) -> FlowPage:
        """Fetch one page of flows matching ``query``."""
        target = self.list_target(query)
        body = await self._send("GET", target, timeout=timeout)
        data = body["data"]

        if isinstance(data, list):
            raw_items, pagination = data, body
        elif isinstance(data, dict) and isinstance(
            data.get(self.family.collection_key), list
        ):
            raw_items = data[self.family.collection_key]
            pagination = data.get("pagination")
            if not isinstance(pagination, dict):
                raise DecodeError(f"GET {target} response has no pagination")
        else:
            raise DecodeError(f"GET {target} response 'data' is not a flow list")

        items = [
            self._record(raw, f"data[{index}]") for index, raw in enumerate(raw_items)
        ]
        warnings: List[IntegrityWarning] = []
        for record in items:
            warnings.extend(check_stage_order(record))

        return FlowPage(
            family=self.family.name,
            items=items,
            page=_pagination_int(pagination, "page"),
            limit=_pagination_int(pagination, "limit"),
            total=_pagination_int(pagination, "total"),
            warnings=warnings,
        )

    async def get_flow(
        self, flow_id: Union[int, str], *, timeout: Optional[float] = None
    ) -> FlowResult:
        """Fetch a single flow by identifier."""
        body = await self._send("GET", self.item_target(flow_id), timeout=timeout)
        return self._result(body)

    async def create_flow(
        self, tracking: str, *, timeout: Optional[float] = None
    ) -> FlowResult:
        """Register a new flow for ``tracking``."""
        if not isinstance(tracking, str) or not tracking.strip():
            raise ValidationError("tracking must not be empty", field="tracking")
        body = await self._send(
            "POST",
            f"/{self.family.resource}",
            payload={"tracking": tracking.strip()},
            timeout=timeout,
        )
        return self._result(body)

    async def get_chart(self, *, timeout: Optional[float] = None) -> ChartResult:
        """Fetch the current period's daily completion counts.

        An empty ``daily_counts`` means no activity and is returned as a
        normal series. Integrity problems are reported in
        :attr:`ChartResult.warnings`, never raised.
        """
        body = await self._send("GET", self.chart_target(), timeout=timeout)
        series = parse_chart_series(body["data"])
        return ChartResult(
            series=series, family=self.family.name, warnings=check_chart(series)
        )
