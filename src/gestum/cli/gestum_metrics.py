"""Metrics CLI: cash flow, stock alerts, support KPIs and sales reports from a snapshot file."""

from __future__ import annotations

import functools
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable

import click
import pytz

from ..config.settings import ConfigError, Settings, get_settings
from ..core.source import SnapshotRecordSource
from ..core.time import parse_utc_iso8601
from ..observability.loguru_config import configure_loguru
from ..pipelines.metrics_pipeline import MetricsPipeline, MetricsPipelineResult, create_metrics_pipeline
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

__all__ = ["cli", "main"]

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  gestum cashflow --snapshot data.json                 # Today's cash in/out
  gestum cashflow --period month --date 2024-03-10     # Cash flow for March 2024
  gestum stock --threshold 5                           # Products with 5 units or fewer
  gestum support --json                                # Support KPIs as JSON
  gestum sales --days 30                               # Last 30 days sales report
  gestum expenses                                      # Overdue bills
  gestum due-soon --days 5                             # Bills due in the next 5 days
""".strip()

SALES_REPORT_DAYS = ("7", "15", "30")


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Gestum - cash flow, stock and support metrics",
    epilog=EPILOG,
)
def cli() -> None:
    """Root command for metrics."""


def snapshot_option(func: Callable[..., int]) -> Callable[..., int]:
    """Add the ``--snapshot`` option shared by every metrics command."""

    @click.option(
        "--snapshot",
        type=click.Path(path_type=Path),
        help="Snapshot file (JSON or YAML); defaults to GESTUM_SNAPSHOT_PATH",
    )
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> int:
        return func(*args, **kwargs)

    return wrapper


def _setup(ctx: CLIContext, snapshot: Path | None) -> tuple[Settings, SnapshotRecordSource, MetricsPipeline]:
    """Load settings, configure logging and build the pipeline for one command."""
    settings = get_settings()
    configure_loguru(
        log_dir=settings.log_dir,
        level="DEBUG" if ctx.verbose else settings.log_level,
        enable_console=not ctx.json_output,
    )

    path = snapshot or settings.snapshot_path
    if path is None:
        raise ConfigError("No snapshot given. Pass --snapshot PATH or set GESTUM_SNAPSHOT_PATH in .env")

    source = SnapshotRecordSource.from_file(path)
    return settings, source, create_metrics_pipeline(source, settings=settings)


def _parse_reference(value: str | None, timezone_str: str) -> datetime | None:
    """Parse ``--date``: a calendar date in the business timezone, or an ISO-8601 instant.

    A bare date maps to local noon so the instant stays on that calendar day
    whatever the offset.
    """
    if value is None:
        return None
    if len(value.strip()) == 10:
        day = date.fromisoformat(value.strip())
        local = pytz.timezone(timezone_str).localize(datetime(day.year, day.month, day.day, 12))
        return local.astimezone(timezone.utc)
    return parse_utc_iso8601(value)


def _meta(result: MetricsPipelineResult, source: SnapshotRecordSource) -> dict[str, Any]:
    return {
        **result.meta,
        "duration_ms": round(result.duration_ms, 3),
        "skipped_records": source.report.skipped_total,
    }


@cli.command("cashflow")
@click.option("--period", default="today", show_default=True, help="Period: today/day or month/this month")
@click.option("--date", "date_str", type=str, help="Reference date (YYYY-MM-DD) or ISO-8601 instant; default now")
@snapshot_option
@cli_command
def cashflow_command(ctx: CLIContext, period: str, date_str: str | None, snapshot: Path | None) -> int:
    """Cash in, cash out and balance for a day or month."""
    cmd = "metrics.cashflow"
    args = {"period": period, "date": date_str, "snapshot": str(snapshot) if snapshot else None}

    try:
        settings, source, pipeline = _setup(ctx, snapshot)
        reference = _parse_reference(date_str, settings.default_timezone)
        result = pipeline.cash_flow(period, reference, trace_id=ctx.trace_id)

        flow = result.data
        text = [
            f"📅 {result.window.start.isoformat()} .. {result.window.end.isoformat()}",  # type: ignore[union-attr]
            f"💰 Cash in:  {flow.cash_in}",
            f"💸 Cash out: {flow.cash_out}",
            f"📊 Balance:  {flow.balance}",
        ]
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("stock")
@click.option("--threshold", type=click.IntRange(min=0), help="Low-stock threshold (default from settings)")
@snapshot_option
@cli_command
def stock_command(ctx: CLIContext, threshold: int | None, snapshot: Path | None) -> int:
    """Products at or below the low-stock threshold."""
    cmd = "metrics.stock"
    args = {"threshold": threshold, "snapshot": str(snapshot) if snapshot else None}

    try:
        _, source, pipeline = _setup(ctx, snapshot)
        result = pipeline.low_stock(threshold, trace_id=ctx.trace_id)

        if result.data:
            text = [f"⚠️  {len(result.data)} product(s) low on stock:"]
            text.extend(f"  - {item.name}: {item.quantity}" for item in result.data)
        else:
            text = ["✅ No products low on stock"]
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("support")
@snapshot_option
@cli_command
def support_command(ctx: CLIContext, snapshot: Path | None) -> int:
    """Support KPIs: volume, response times, transfer rate and group-bys."""
    cmd = "metrics.support"
    args = {"snapshot": str(snapshot) if snapshot else None}

    try:
        _, source, pipeline = _setup(ctx, snapshot)
        result = pipeline.support_metrics(trace_id=ctx.trace_id)

        metrics = result.data
        text = [
            f"💬 Conversations: {metrics.total_conversations} ({metrics.open_conversations} open)",
            f"⏱️  Avg first response: {metrics.avg_first_response_minutes} min",
            f"✅ Avg resolution: {metrics.avg_resolution_minutes} min",
            f"🔀 Transfer rate: {metrics.transfer_rate}%",
        ]
        if metrics.chats_by_team:
            text.append("By team:")
            text.extend(f"  - {group.team_name}: {group.count}" for group in metrics.chats_by_team)
        if metrics.chats_by_tag:
            text.append("By tag:")
            text.extend(f"  - {group.tag_name}: {group.count}" for group in metrics.chats_by_tag)
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("sales")
@click.option("--days", type=click.Choice(SALES_REPORT_DAYS), default="7", show_default=True, help="Report range")
@click.option("--date", "date_str", type=str, help="Reference date (YYYY-MM-DD) or ISO-8601 instant; default now")
@snapshot_option
@cli_command
def sales_command(ctx: CLIContext, days: str, date_str: str | None, snapshot: Path | None) -> int:
    """Sales report for the last 7, 15 or 30 days."""
    cmd = "metrics.sales"
    args = {"days": int(days), "date": date_str, "snapshot": str(snapshot) if snapshot else None}

    try:
        settings, source, pipeline = _setup(ctx, snapshot)
        reference = _parse_reference(date_str, settings.default_timezone)
        result = pipeline.sales_report(int(days), reference, trace_id=ctx.trace_id)

        report = result.data
        text = [
            f"🧾 Last {report.days} days: {report.sales_count} sale(s)",
            f"💰 Total: {report.total}",
            f"📈 Average per day: {report.average_per_day}",
        ]
        if report.top_product:
            text.append(f"🏆 Top product: {report.top_product.name} ({report.top_product.quantity} sold)")
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("daily")
@click.option("--days", type=click.IntRange(min=1), default=7, show_default=True, help="Number of days")
@click.option("--date", "date_str", type=str, help="Last day (YYYY-MM-DD) or ISO-8601 instant; default now")
@snapshot_option
@cli_command
def daily_command(ctx: CLIContext, days: int, date_str: str | None, snapshot: Path | None) -> int:
    """Completed sales per day, oldest first."""
    cmd = "metrics.daily"
    args = {"days": days, "date": date_str, "snapshot": str(snapshot) if snapshot else None}

    try:
        settings, source, pipeline = _setup(ctx, snapshot)
        reference = _parse_reference(date_str, settings.default_timezone)
        result = pipeline.daily_sales(days, reference, trace_id=ctx.trace_id)

        text = [f"  {entry.day.isoformat()}: {entry.total} ({entry.count})" for entry in result.data]
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("expenses")
@click.option("--date", "date_str", type=str, help="Reference date (YYYY-MM-DD) or ISO-8601 instant; default now")
@snapshot_option
@cli_command
def expenses_command(ctx: CLIContext, date_str: str | None, snapshot: Path | None) -> int:
    """Pending expenses past their due date."""
    cmd = "metrics.expenses"
    args = {"date": date_str, "snapshot": str(snapshot) if snapshot else None}

    try:
        settings, source, pipeline = _setup(ctx, snapshot)
        reference = _parse_reference(date_str, settings.default_timezone)
        result = pipeline.overdue_expenses(reference, trace_id=ctx.trace_id)

        if result.data:
            text = [f"⏰ {len(result.data)} overdue expense(s):"]
            text.extend(
                f"  - {item.name or item.id}: {item.amount} ({item.days_overdue} day(s) late)" for item in result.data
            )
        else:
            text = ["✅ No overdue expenses"]
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("due-soon")
@click.option("--date", "date_str", type=str, help="Reference date (YYYY-MM-DD) or ISO-8601 instant; default now")
@click.option("--days", type=click.IntRange(min=0), default=5, show_default=True, help="Days ahead to look")
@snapshot_option
@cli_command
def due_soon_command(ctx: CLIContext, date_str: str | None, days: int, snapshot: Path | None) -> int:
    """Pending expenses falling due in the next few days."""
    cmd = "metrics.due_soon"
    args = {"date": date_str, "days": days, "snapshot": str(snapshot) if snapshot else None}

    try:
        settings, source, pipeline = _setup(ctx, snapshot)
        reference = _parse_reference(date_str, settings.default_timezone)
        result = pipeline.due_soon_expenses(reference, days, trace_id=ctx.trace_id)

        if result.data:
            text = [f"📆 {len(result.data)} expense(s) due soon:"]
            text.extend(
                f"  - {item.name or item.id}: {item.amount} (due in {item.days_until_due} day(s))"
                for item in result.data
            )
        else:
            text = ["✅ No expenses due soon"]
        return handle_cli_success(ctx, result.to_dict(), cmd, args, meta=_meta(result, source), text=text)

    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    if args is None:
        args = sys.argv[1:]

    try:
        return cli.main(args=list(args), standalone_mode=False) or 0
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        return 1
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else 0


if __name__ == "__main__":
    sys.exit(main())
