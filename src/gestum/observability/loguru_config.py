"""Loguru configuration with timing support.

This module provides centralized loguru configuration with:
- Colorized console output
- Structured JSON log files with correlation (trace) IDs
- A context manager for timing operations

Components: source (snapshot loading), pipeline (metrics runs), cli.
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("source", "pipeline", "cli")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "100 MB",
    retention: str = "10 days",
    enable_console: bool = True,
    enable_timing_logs: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    log_dir
        Directory for JSONL log files (None: console only)
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "100 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    enable_console
        Enable console output on stderr
    enable_timing_logs
        Enable separate timing log file (only with ``log_dir``)

    Example
    -------
    >>> configure_loguru(log_dir=Path("logs"), level="INFO")
    """
    # Remove default handler
    logger.remove()
    logger.configure(extra={"component": "gestum"})

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        # Main application log (structured JSON)
        logger.add(
            log_dir / "gestum.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            serialize=True,
            backtrace=True,
            diagnose=False,
        )

        if enable_timing_logs:
            logger.add(
                log_dir / "timing.jsonl",
                format="{message}",
                level="DEBUG",
                rotation=rotation,
                retention=retention,
                serialize=True,
                filter=lambda record: record["extra"].get("timing", False),
            )

        for component in COMPONENTS:
            logger.add(
                log_dir / f"{component}.jsonl",
                format="{message}",
                level=level,
                rotation=rotation,
                retention=retention,
                serialize=True,
                filter=lambda record, comp=component: record["extra"].get("component") == comp,
            )

    logger.bind(component="gestum").debug(
        "Loguru configured",
        log_dir=str(log_dir) if log_dir else None,
        level=level,
    )


def get_logger(component: str = "gestum") -> Any:
    """Get logger instance bound to a component.

    Parameters
    ----------
    component
        Component name (source, pipeline, cli)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "gestum",
    trace_id: str | None = None,
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Context manager for timing operations.

    Yields a dictionary that the caller can fill with extra fields; they are
    logged together with the duration when the block exits.

    Example
    -------
    >>> with timing_context("cash_flow", component="pipeline", trace_id="abc-123") as ctx:
    ...     ctx["sales"] = len(sales)
    """
    start_ns = time.perf_counter_ns()
    context: dict[str, Any] = dict(metadata)
    bound = logger.bind(component=component, timing=True, operation=operation, trace_id=trace_id)

    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ns = time.perf_counter_ns() - start_ns
        bound.debug(
            f"END: {operation}",
            phase="end",
            duration_ms=duration_ns / 1_000_000,
            duration_ns=duration_ns,
            **context,
        )
