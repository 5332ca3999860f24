"""Metrics Pipeline - thin orchestration for one metrics request.

The pipeline fetches the snapshot from the Record Source, resolves the window
once per request, hands both to the pure aggregators and logs the run with a
trace id. It holds no business logic and no state between requests.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from ..core.time import ensure_utc, format_utc_iso8601, get_current_utc
from ..observability.loguru_config import get_logger, timing_context
from ..rollups.aggregator import (
    compute_cash_flow,
    compute_daily_sales,
    compute_sales_report,
    compute_support_metrics,
)
from ..rollups.alerts import evaluate_due_soon_expenses, evaluate_low_stock, evaluate_overdue_expenses
from ..rollups.filters import DEFAULT_DUE_SOON_DAYS, DEFAULT_LOW_STOCK_THRESHOLD
from ..rollups.time_windows import DEFAULT_TIMEZONE, Window, parse_period, resolve_window, rolling_window

if TYPE_CHECKING:
    from ..config.settings import Settings
    from ..core.source import Directory, RecordSource

__all__ = [
    "MetricsPipeline",
    "MetricsPipelineConfig",
    "MetricsPipelineResult",
    "create_metrics_pipeline",
]


@dataclass
class MetricsPipelineConfig:
    """Configuration for metrics pipeline."""

    timezone: str = DEFAULT_TIMEZONE
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    log_path: Path | None = None


@dataclass
class MetricsPipelineResult:
    """Result of one metrics request."""

    operation: str  # cash_flow, low_stock, support_metrics, ...
    data: Any
    reference: datetime
    duration_ms: float
    trace_id: str
    window: Window | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.data, list):
            data: Any = [item.to_dict() for item in self.data]
        else:
            data = self.data.to_dict()
        return {
            "operation": self.operation,
            "reference": format_utc_iso8601(self.reference),
            "window": self.window.to_dict() if self.window else None,
            "result": data,
        }


class MetricsPipeline:
    """Thin orchestration pipeline for metrics requests.

    Responsibilities:
    - Fetch one snapshot from the Record Source per request
    - Resolve the time window once per request
    - Run the aggregator or alert evaluator
    - Emit structured logs with trace IDs
    - NO aggregation logic (rollups own it)

    Example:
        >>> from gestum.core.source import SnapshotRecordSource
        >>> source = SnapshotRecordSource.from_file("snapshot.json")
        >>> pipeline = create_metrics_pipeline(source, timezone="America/Sao_Paulo")
        >>> result = pipeline.cash_flow("today")
        >>> result.data.balance
        Decimal('70.00')
    """

    def __init__(
        self,
        config: MetricsPipelineConfig,
        *,
        source: RecordSource,
        directory: Directory | None = None,
        clock: Callable[[], datetime] = get_current_utc,
    ) -> None:
        """Initialize metrics pipeline.

        Parameters
        ----------
        config
            Pipeline configuration
        source
            Record Source supplying snapshots
        directory
            Tag/team display metadata; defaults to the source's own directory
            when it has one
        clock
            Returns the current UTC instant, used when no reference is given
        """
        self.config = config
        self.source = source
        if directory is None and hasattr(source, "directory"):
            directory = source.directory()
        self.directory = directory
        self.clock = clock
        self.logger = get_logger("pipeline")

    def cash_flow(
        self,
        period: str = "today",
        reference: datetime | None = None,
        *,
        trace_id: str | None = None,
    ) -> MetricsPipelineResult:
        """Cash in, cash out and balance for the day or month around ``reference``.

        Raises
        ------
        InvalidPeriod
            If ``period`` is not a known token
        """
        resolved = parse_period(period)
        reference = self._reference(reference)
        window = resolve_window(resolved, reference, self.config.timezone)

        return self._run(
            "cash_flow",
            lambda: compute_cash_flow(self.source.list_sales(), self.source.list_expenses(), window),
            reference=reference,
            window=window,
            trace_id=trace_id,
            period=resolved.value,
        )

    def low_stock(self, threshold: int | None = None, *, trace_id: str | None = None) -> MetricsPipelineResult:
        """Products at or below the threshold (configured default when None)."""
        if threshold is None:
            threshold = self.config.low_stock_threshold

        return self._run(
            "low_stock",
            lambda: evaluate_low_stock(self.source.list_products(), threshold),
            reference=self.clock(),
            trace_id=trace_id,
            threshold=threshold,
        )

    def support_metrics(self, *, trace_id: str | None = None) -> MetricsPipelineResult:
        """Support KPIs over the whole conversation snapshot."""
        return self._run(
            "support_metrics",
            lambda: compute_support_metrics(self.source.list_support_conversations(), self.directory),
            reference=self.clock(),
            trace_id=trace_id,
        )

    def daily_sales(
        self,
        days: int = 7,
        reference: datetime | None = None,
        *,
        trace_id: str | None = None,
    ) -> MetricsPipelineResult:
        """Completed sales per local day for the last ``days`` days."""
        reference = self._reference(reference)
        return self._run(
            "daily_sales",
            lambda: compute_daily_sales(self.source.list_sales(), reference, days, self.config.timezone),
            reference=reference,
            trace_id=trace_id,
            days=days,
        )

    def sales_report(
        self,
        days: int = 7,
        reference: datetime | None = None,
        *,
        trace_id: str | None = None,
    ) -> MetricsPipelineResult:
        """Sales summary over the last ``days`` days."""
        reference = self._reference(reference)
        window = rolling_window(days, reference)

        def report():
            return compute_sales_report(self.source.list_sales(), self.source.list_products(), days, reference)

        return self._run("sales_report", report, reference=reference, window=window, trace_id=trace_id, days=days)

    def overdue_expenses(
        self,
        reference: datetime | None = None,
        *,
        trace_id: str | None = None,
    ) -> MetricsPipelineResult:
        """Pending expenses past their due date at ``reference``."""
        reference = self._reference(reference)
        return self._run(
            "overdue_expenses",
            lambda: evaluate_overdue_expenses(self.source.list_expenses(), reference),
            reference=reference,
            trace_id=trace_id,
        )

    def due_soon_expenses(
        self,
        reference: datetime | None = None,
        within_days: int = DEFAULT_DUE_SOON_DAYS,
        *,
        trace_id: str | None = None,
    ) -> MetricsPipelineResult:
        """Pending expenses falling due within ``within_days`` days of ``reference``."""
        reference = self._reference(reference)
        return self._run(
            "due_soon_expenses",
            lambda: evaluate_due_soon_expenses(self.source.list_expenses(), reference, within_days),
            reference=reference,
            trace_id=trace_id,
            within_days=within_days,
        )

    def _reference(self, reference: datetime | None) -> datetime:
        return ensure_utc(reference) if reference is not None else self.clock()

    def _run(
        self,
        operation: str,
        compute: Callable[[], Any],
        *,
        reference: datetime,
        trace_id: str | None = None,
        window: Window | None = None,
        **fields: Any,
    ) -> MetricsPipelineResult:
        """Run one aggregation with start/completion logging.

        Parameters
        ----------
        operation
            Operation name used in logs and results
        compute
            Zero-argument callable performing the aggregation
        reference
            Reference instant of the request
        trace_id
            Trace ID (generated when None)
        window
            Resolved window, if the operation has one
        **fields
            Request parameters recorded in logs and result metadata
        """
        trace_id = trace_id or str(uuid.uuid4())
        start_time = time.time()

        self._log_event(
            "pipeline_started",
            {
                "trace_id": trace_id,
                "operation": operation,
                "reference": format_utc_iso8601(reference),
                "window": window.to_dict() if window else None,
                **fields,
            },
        )

        try:
            with timing_context(operation, component="pipeline", trace_id=trace_id):
                data = compute()
        except Exception as exc:
            self._log_event(
                "pipeline_failed",
                {
                    "trace_id": trace_id,
                    "operation": operation,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "outcome": "failure",
                },
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        self._log_event(
            "pipeline_completed",
            {
                "trace_id": trace_id,
                "operation": operation,
                "duration_ms": duration_ms,
                "outcome": "success",
            },
        )

        return MetricsPipelineResult(
            operation=operation,
            data=data,
            reference=reference,
            duration_ms=duration_ms,
            trace_id=trace_id,
            window=window,
            meta=dict(fields),
        )

    def _log_event(self, event_type: str, data: dict[str, Any]) -> None:
        """Emit structured log entry, and append it to the JSONL log if configured.

        Parameters
        ----------
        event_type
            Type of log event
        data
            Event data (must be JSON-serializable)
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "component": "pipeline",
            "pipeline": "metrics",
            "event_type": event_type,
            **data,
        }

        if self.config.log_path:
            self.config.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(log_entry, ensure_ascii=False) + "\n")

        if data.get("outcome") == "failure":
            self.logger.error(event_type, **data)
        else:
            self.logger.info(event_type, **data)


def create_metrics_pipeline(
    source: RecordSource,
    *,
    directory: Directory | None = None,
    settings: Settings | None = None,
    log_path: Path | str | None = None,
    clock: Callable[[], datetime] = get_current_utc,
    **config_kwargs: Any,
) -> MetricsPipeline:
    """Factory function to create metrics pipeline.

    Parameters
    ----------
    source
        Record Source supplying snapshots
    directory
        Optional tag/team directory
    settings
        Settings providing the business timezone and low-stock threshold;
        explicit ``config_kwargs`` take precedence
    log_path
        Optional path for JSONL logs
    clock
        Current-time provider
    **config_kwargs
        Additional configuration options

    Returns
    -------
    MetricsPipeline
        Configured pipeline instance

    Example:
        >>> pipeline = create_metrics_pipeline(
        ...     source,
        ...     settings=get_settings(),
        ...     log_path=Path("logs/pipelines/metrics.jsonl"),
        ... )
    """
    if settings is not None:
        config_kwargs.setdefault("timezone", settings.default_timezone)
        config_kwargs.setdefault("low_stock_threshold", settings.low_stock_threshold)

    if log_path:
        log_path = Path(log_path) if isinstance(log_path, str) else log_path
        config_kwargs["log_path"] = log_path

    config = MetricsPipelineConfig(**config_kwargs)

    return MetricsPipeline(config, source=source, directory=directory, clock=clock)
