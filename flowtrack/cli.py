"""Command line interface for browsing fulfillment flows."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

import typer

from flowtrack import FlowGateway, FlowQuery, build_timeline, get_family, get_transport
from flowtrack.constants import TREND_WINDOW_DAYS
from flowtrack.errors import (
    DecodeError,
    FlowtrackError,
    IntegrityWarning,
    NotFoundError,
    TransportError,
    ValidationError,
)
from flowtrack.families import FAMILIES

app = typer.Typer(help="CLI for fulfillment flow tracking")

# Command groups
flows_app = typer.Typer(help="Commands for listing and inspecting flows")

app.add_typer(flows_app, name="flows")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """flowtrack CLI entry point."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _run(
    family_name: str,
    call: Callable[[FlowGateway], Awaitable[Any]],
    not_found: str = "Flow not found",
) -> Any:
    """Run ``call`` against a gateway for ``family_name``, exiting on errors."""

    async def _with_transport() -> Any:
        transport = get_transport()
        async with transport:
            return await call(FlowGateway(transport, family))

    try:
        family = get_family(family_name)
        return asyncio.run(_with_transport())
    except ValidationError as exc:
        typer.secho(f"Invalid input: {exc}", fg=typer.colors.RED)
    except NotFoundError:
        typer.echo(not_found)
    except TransportError as exc:
        status = exc.status_code if exc.status_code is not None else "no response"
        typer.secho(f"Service error ({status}): {exc}", fg=typer.colors.RED)
    except DecodeError as exc:
        typer.secho(f"Unexpected response: {exc}", fg=typer.colors.RED)
    except FlowtrackError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _print_warnings(warnings: List[IntegrityWarning]) -> None:
    for warning in warnings:
        typer.secho(f"warning: {warning}", fg=typer.colors.YELLOW)


@app.command("families")
def families() -> None:
    """List flow families and their stage sequences."""
    for family in FAMILIES.values():
        typer.echo(f"{family.name} (/{family.resource}): {' -> '.join(family.stage_names)}")


@flows_app.command("list")
def flows_list(
    family: str,
    page: int = typer.Option(1, help="Page number (1-based)"),
    limit: int = typer.Option(10, help="Page size; the maximum is set by the service"),
    search: Optional[str] = typer.Option(None, help="Free-text search"),
    start_date: Optional[str] = typer.Option(None, help="Inclusive start, YYYY-MM-DD"),
    end_date: Optional[str] = typer.Option(None, help="Inclusive end, YYYY-MM-DD"),
) -> None:
    """
    List flows for a family, one page at a time.

    Example:
        flowtrack flows list ribbon --page 2 --limit 5 --search AB123
        # Output: AB123-01    quality-control    complained=no
        #         Page 2/3 (12 total)
    """
    try:
        query = FlowQuery.create(
            page=page,
            limit=limit,
            search=search,
            start_date=start_date,
            end_date=end_date,
        )
    except ValidationError as exc:
        typer.secho(f"Invalid input: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    result = _run(family, lambda gateway: gateway.list_flows(query))
    if not result.items:
        typer.echo("No flows found")
    for record in result.items:
        typer.echo(
            f"{record.tracking}\t{record.current_stage or 'not started'}"
            f"\tcomplained={'yes' if record.order.complained else 'no'}"
        )
    typer.echo(f"Page {result.page}/{max(result.pages, 1)} ({result.total} total)")
    _print_warnings(result.warnings)


@flows_app.command("show")
def flows_show(family: str, flow_id: str) -> None:
    """Show one flow with its stage timeline."""
    result = _run(family, lambda gateway: gateway.get_flow(flow_id))
    record = result.record
    timeline = build_timeline(record, get_family(family))

    typer.echo(f"Flow {record.tracking} ({record.family})")
    typer.echo(
        f"Order {record.order.order_id} created {record.order.created_at:%d %b %Y - %H:%M:%S}"
        f" complained={'yes' if record.order.complained else 'no'}"
    )
    for entry in timeline.entries:
        elapsed = f" (+{entry.elapsed})" if entry.elapsed is not None else ""
        typer.echo(
            f"- {entry.label}: {entry.actor} at "
            f"{entry.completed_at:%d %b %Y - %H:%M:%S}{elapsed}"
        )
    for stage in timeline.pending:
        typer.echo(f"- {stage}: pending")
    outbound = record.outbound
    if outbound is not None:
        typer.echo(f"Expedition: {outbound.expedition}")
    if timeline.lead_time is not None:
        typer.echo(f"Lead time: {timeline.lead_time}")
    _print_warnings(timeline.warnings)


@flows_app.command("create")
def flows_create(family: str, tracking: str) -> None:
    """Register a new flow for a tracking code."""
    result = _run(family, lambda gateway: gateway.create_flow(tracking))
    typer.echo(f"Created flow {result.record.tracking}")
    _print_warnings(result.warnings)


@app.command("chart")
def chart(family: str) -> None:
    """
    Show the current month's daily completion counts for a family.

    The service decides which month is current; older months cannot be
    requested.
    """
    result = _run(
        family,
        lambda gateway: gateway.get_chart(),
        not_found="No chart data for the current period",
    )
    series = result.series
    typer.echo(f"{series.month} {series.year}: {series.total_count} total")
    if series.is_empty:
        typer.echo("No activity this month")
    for daily in series.daily_counts:
        typer.echo(f"{daily.day:%b %d}\t{daily.count}")
    if series.daily_counts:
        typer.echo(
            f"Trend (last {TREND_WINDOW_DAYS} days vs month average): "
            f"{series.trend_percentage():+.1f}%"
        )
    _print_warnings(result.warnings)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
