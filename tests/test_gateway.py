"""Tests for the retrieval gateway over both flow families."""

import asyncio

import httpx
import pytest

from flowtrack.errors import (
    DecodeError,
    NotFoundError,
    RecordValidationError,
    TransportError,
    ValidationError,
)
from flowtrack.families import ONLINE, RIBBON
from flowtrack.gateway import FlowGateway
from flowtrack.query import FlowQuery
from flowtrack.transports.base import BaseTransport, TransportResponse
from flowtrack.transports.httpx import HttpxTransport
from flowtrack.transports.inmemory import InMemoryTransport


def _ribbon_flows(make_flow, count):
    return [
        make_flow(tracking=f"AB123-{i:02d}", stages=["mb_ribbon", "qc_ribbon"])
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_ribbon_listing_scenario(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)
    query = FlowQuery.create(page=2, limit=5, search="AB123")
    flows = _ribbon_flows(make_flow, 5)
    transport.add_response(
        "GET",
        "/ribbon-flow?page=2&limit=5&search=AB123",
        {"data": flows, "page": 2, "limit": 5, "total": 12},
    )

    page = await gateway.list_flows(query)

    assert transport.requests[0].target == "/ribbon-flow?page=2&limit=5&search=AB123"
    assert (page.page, page.limit, page.total) == (2, 5, 12)
    assert [r.tracking for r in page.items] == [f["tracking"] for f in flows]
    assert page.warnings == []
    assert page.pages == 3
    assert page.has_next


@pytest.mark.asyncio
async def test_listing_accepts_nested_pagination_envelope(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    flow = make_flow(stages=["mb_online", "qc_online", "pc_online"])
    transport.add_response(
        "GET",
        "/online-flow?page=1&limit=10",
        {
            "success": True,
            "message": "ok",
            "data": {
                "online_flows": [flow],
                "pagination": {"page": 1, "limit": 10, "total": 1},
            },
        },
    )

    page = await gateway.list_flows()

    assert page.family == "online"
    assert page.items[0].current_stage == "pack-control"
    assert page.total == 1
    assert not page.has_next


@pytest.mark.asyncio
async def test_listing_preserves_upstream_order(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    trackings = ["ZZ-9", "AA-1", "MM-5"]
    transport.add_response(
        "GET",
        "/online-flow?page=1&limit=3",
        {
            "data": [make_flow(tracking=t) for t in trackings],
            "page": 1,
            "limit": 3,
            "total": 3,
        },
    )
    page = await gateway.list_flows(FlowQuery.create(limit=3))
    assert [r.tracking for r in page.items] == trackings


@pytest.mark.asyncio
async def test_listing_with_date_range_sends_dates(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)
    target = "/ribbon-flow?page=1&limit=10&start_date=2024-03-01&end_date=2024-03-10"
    transport.add_response("GET", target, {"data": [], "page": 1, "limit": 10, "total": 0})

    page = await gateway.list_flows(
        FlowQuery.create(start_date="2024-03-01", end_date="2024-03-10")
    )
    assert page.items == []
    assert transport.requests[0].target == target


@pytest.mark.asyncio
async def test_reversed_dates_never_reach_transport():
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)

    with pytest.raises(ValidationError):
        await gateway.list_flows(
            FlowQuery.create(start_date="2024-03-10", end_date="2024-03-01")
        )
    assert transport.requests == []


def test_list_target_is_deterministic():
    gateway = FlowGateway(InMemoryTransport(), RIBBON)
    first = gateway.list_target(FlowQuery.create(page=2, limit=5, search=" AB123 "))
    second = gateway.list_target(FlowQuery.create(search="AB123", limit=5, page=2))
    assert first == second == "/ribbon-flow?page=2&limit=5&search=AB123"
    assert gateway.list_target() == "/ribbon-flow?page=1&limit=10"


@pytest.mark.asyncio
async def test_listing_flags_out_of_order_records(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    bad = make_flow(tracking="BAD-1", stages=["mb_online", "qc_online"])
    bad["qc_online"]["created_at"] = "2024-03-05T07:00:00+00:00"
    transport.add_response(
        "GET",
        "/online-flow?page=1&limit=10",
        {"data": [make_flow(), bad], "page": 1, "limit": 10, "total": 2},
    )

    page = await gateway.list_flows()

    assert len(page.items) == 2
    assert [(w.code, w.tracking) for w in page.warnings] == [
        ("stage_out_of_order", "BAD-1")
    ]


@pytest.mark.asyncio
async def test_listing_with_naive_timestamp_is_decode_error(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    naive = make_flow(tracking="NAIVE-1", stages=["mb_online", "qc_online"])
    naive["qc_online"]["created_at"] = "2024-03-05T09:00:00"
    transport.add_response(
        "GET",
        "/online-flow?page=1&limit=10",
        {"data": [make_flow(), naive], "page": 1, "limit": 10, "total": 2},
    )

    with pytest.raises(RecordValidationError) as exc:
        await gateway.list_flows()
    assert exc.value.field == "data[1].qc_online.created_at"


@pytest.mark.asyncio
async def test_invalid_record_in_listing_names_index(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)
    broken = make_flow(stages=["qc_ribbon"])
    del broken["qc_ribbon"]["user"]
    transport.add_response(
        "GET",
        "/ribbon-flow?page=1&limit=10",
        {"data": [make_flow(), broken], "page": 1, "limit": 10, "total": 2},
    )

    with pytest.raises(RecordValidationError) as exc:
        await gateway.list_flows()
    assert exc.value.field == "data[1].qc_ribbon.user"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"items": []},
        {"data": "nope", "page": 1, "limit": 10, "total": 0},
        {"data": [], "page": 1, "limit": 10},
        {"data": [], "page": "1", "limit": 10, "total": 0},
        {"data": {"ribbon_flows": []}},
        {"success": False, "message": "db down", "data": None},
        "<html>gateway</html>",
    ],
)
async def test_malformed_listing_is_decode_error(body):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)
    transport.add_response("GET", "/ribbon-flow?page=1&limit=10", body)

    with pytest.raises(DecodeError):
        await gateway.list_flows()


@pytest.mark.asyncio
async def test_status_failure_is_transport_error():
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    transport.add_response(
        "GET", "/online-flow?page=1&limit=10", {"message": "maintenance"}, status_code=503
    )

    with pytest.raises(TransportError) as exc:
        await gateway.list_flows()
    assert exc.value.status_code == 503
    assert exc.value.status_class == "5xx"
    assert str(exc.value) == "maintenance"
    assert not isinstance(exc.value, DecodeError)


@pytest.mark.asyncio
async def test_get_flow_and_not_found(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    transport.add_response(
        "GET",
        "/online-flow/17",
        {"data": make_flow(stages=["mb_online", "qc_online", "pc_online", "outbound"])},
    )

    result = await gateway.get_flow(17)
    assert result.record.is_dispatched
    assert result.warnings == []

    with pytest.raises(NotFoundError) as exc:
        await gateway.get_flow("18")
    assert exc.value.target == "/online-flow/18"
    assert not isinstance(exc.value, TransportError)


@pytest.mark.asyncio
async def test_get_flow_rejects_blank_id():
    transport = InMemoryTransport()
    with pytest.raises(ValidationError):
        await FlowGateway(transport, ONLINE).get_flow("  ")
    assert transport.requests == []


@pytest.mark.asyncio
async def test_create_flow_posts_tracking(make_flow):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)
    transport.add_response(
        "POST", "/ribbon-flow", {"data": make_flow(tracking="NEW-1")}, status_code=201
    )

    result = await gateway.create_flow(" NEW-1 ")

    assert result.record.tracking == "NEW-1"
    assert result.record.stages == {}
    assert transport.requests[0].json == {"tracking": "NEW-1"}


@pytest.mark.asyncio
async def test_create_flow_rejects_blank_tracking():
    transport = InMemoryTransport()
    with pytest.raises(ValidationError):
        await FlowGateway(transport, RIBBON).create_flow("")
    assert transport.requests == []


@pytest.mark.asyncio
async def test_chart_mismatch_returns_series_with_warning(make_chart):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, RIBBON)
    counts = [2] * 23 + [1] + [0] * 7
    transport.add_response("GET", "/ribbon-flow/chart", {"data": make_chart(counts, total=50)})

    result = await gateway.get_chart()

    assert result.family == "ribbon"
    assert result.series.computed_total == 47
    assert result.series.total_count == 50
    assert [w.code for w in result.warnings] == ["chart_total_mismatch"]
    assert not result.is_consistent


@pytest.mark.asyncio
async def test_chart_without_activity_is_not_an_error():
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    transport.add_response(
        "GET",
        "/online-flow/chart",
        {"data": {"month": "March", "year": 2024, "daily_counts": [], "total_count": 0}},
    )

    result = await gateway.get_chart()
    assert result.series.is_empty
    assert result.is_consistent


@pytest.mark.asyncio
async def test_timeout_is_forwarded_unchanged(make_chart):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    transport.add_response("GET", "/online-flow/chart", {"data": make_chart([1] * 31)})

    await gateway.get_chart(timeout=2.5)
    await gateway.get_chart()
    assert [r.timeout for r in transport.requests] == [2.5, None]


@pytest.mark.asyncio
async def test_listing_and_chart_run_concurrently(make_flow, make_chart):
    transport = InMemoryTransport()
    gateway = FlowGateway(transport, ONLINE)
    transport.add_response(
        "GET",
        "/online-flow?page=1&limit=10",
        {"data": [make_flow()], "page": 1, "limit": 10, "total": 1},
    )
    transport.add_response("GET", "/online-flow/chart", {"data": make_chart([1] * 31)})

    page, chart = await asyncio.gather(gateway.list_flows(), gateway.get_chart())
    assert page.total == 1
    assert chart.series.total_count == 31


class _StallingTransport(BaseTransport):
    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = False

    async def request(self, method, target, json=None, timeout=None) -> TransportResponse:
        self.started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return TransportResponse(status_code=200, text="{}")


@pytest.mark.asyncio
async def test_cancellation_propagates_to_transport():
    transport = _StallingTransport()
    gateway = FlowGateway(transport, RIBBON)

    task = asyncio.create_task(gateway.list_flows())
    await transport.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert transport.cancelled


@pytest.mark.asyncio
async def test_gateway_over_httpx_transport(make_flow):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.query == b"page=1&limit=2"
        return httpx.Response(
            200,
            json={"data": [make_flow(), make_flow(tracking="AB123-02")], "page": 1, "limit": 2, "total": 4},
        )

    async with HttpxTransport(
        "http://wms.local/api", transport=httpx.MockTransport(handler)
    ) as transport:
        page = await FlowGateway(transport, ONLINE).list_flows(FlowQuery.create(limit=2))

    assert [r.tracking for r in page.items] == ["AB123-01", "AB123-02"]
    assert page.pages == 2


@pytest.mark.asyncio
async def test_gateway_maps_httpx_non_json_to_decode_error():
    transport = HttpxTransport(
        "http://wms.local/api",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="oops")),
    )
    with pytest.raises(DecodeError):
        await FlowGateway(transport, RIBBON).get_chart()


def test_error_body_message_is_optional():
    transport = InMemoryTransport()
    transport.add_response("GET", "/ribbon-flow/chart", "", status_code=500)
    with pytest.raises(TransportError) as exc:
        asyncio.run(FlowGateway(transport, RIBBON).get_chart())
    assert str(exc.value) == "Request failed"
    assert exc.value.status_code == 500
