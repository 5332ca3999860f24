"""Common CLI utilities: JSON output envelope, stable exit codes and command logging."""

from __future__ import annotations

import functools
import json
import traceback
import uuid
from enum import IntEnum
from typing import Any, Callable

import click

from ..config.settings import ConfigError
from ..core.records import InvalidRecord
from ..core.source import SnapshotError
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import InvalidPeriod

__all__ = [
    "CLIContext",
    "ExitCode",
    "cli_command",
    "exit_code_for",
    "handle_cli_error",
    "handle_cli_success",
]

cli_logger = get_logger("cli")


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    VALIDATION_ERROR = 2  # Bad period, record or argument
    IO_ERROR = 5  # Snapshot missing or unreadable
    CONFIG_ERROR = 6  # Configuration error
    UNKNOWN_ERROR = 7  # Unknown/unexpected error


class CLIContext:
    """Context for CLI execution with JSON output and trace ID."""

    def __init__(
        self,
        json_output: bool = False,
        trace_id: str | None = None,
        verbose: bool = False,
    ):
        """Initialize CLI context.

        Args:
            json_output: Enable JSON output mode
            trace_id: Trace ID for correlation
            verbose: Verbose output
        """
        self.json_output = json_output
        self.trace_id = trace_id or f"trace-{uuid.uuid4().hex[:12]}"
        self.verbose = verbose

    def output(
        self,
        data: Any,
        status: str = "success",
        error: str | None = None,
        meta: dict[str, Any] | None = None,
        text: list[str] | None = None,
    ) -> None:
        """Output result in appropriate format.

        Args:
            data: Result data
            status: Status ("success", "error", "warning")
            error: Error message if status is error
            meta: Additional metadata
            text: Pre-rendered lines for human-readable mode
        """
        if self.json_output:
            # JSON mode: print only JSON, no logs
            result: dict[str, Any] = {"status": status, "trace_id": self.trace_id}

            if error:
                result["error"] = error
            else:
                result["data"] = data

            if meta:
                result["meta"] = meta

            click.echo(json.dumps(result, ensure_ascii=False, indent=2))
        elif status == "error":
            click.echo(f"❌ {error}")
        elif status == "warning":
            click.echo(f"⚠️  {data}")
        elif text is not None:
            for line in text:
                click.echo(line)
        elif isinstance(data, dict):
            for key, value in data.items():
                click.echo(f"{key}: {value}")
        elif isinstance(data, list):
            for item in data:
                click.echo(f"  - {item}")
        else:
            click.echo(data)


def cli_command(func: Callable[..., int]) -> Callable[..., int]:
    """Decorator to add common CLI options to commands.

    Adds:
    - --json: JSON output mode
    - --trace-id: Trace ID for correlation
    - --verbose: Verbose output
    """

    @click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
    @click.option("--trace-id", type=str, help="Trace ID for correlation")
    @click.option("--verbose", "-v", is_flag=True, help="Verbose output")
    @functools.wraps(func)
    def wrapper(
        json_output: bool,
        trace_id: str | None,
        verbose: bool,
        *args: Any,
        **kwargs: Any,
    ) -> int:
        ctx = CLIContext(json_output=json_output, trace_id=trace_id, verbose=verbose)

        # Inject context as first argument
        return func(ctx, *args, **kwargs)

    return wrapper


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map an exception to its stable exit code."""
    if isinstance(exc, ConfigError):
        return ExitCode.CONFIG_ERROR
    if isinstance(exc, (SnapshotError, OSError)):
        return ExitCode.IO_ERROR
    if isinstance(exc, (InvalidPeriod, InvalidRecord, ValueError)):
        return ExitCode.VALIDATION_ERROR
    return ExitCode.UNKNOWN_ERROR


def handle_cli_error(ctx: CLIContext, exc: Exception, cmd: str, args: dict[str, Any]) -> int:
    """Handle CLI error and return appropriate exit code.

    Args:
        ctx: CLI context
        exc: Exception to handle
        cmd: Command name
        args: Command arguments

    Returns:
        Appropriate exit code
    """
    exit_code = exit_code_for(exc)
    error_msg = str(exc)

    cli_logger.bind(trace_id=ctx.trace_id).error(
        "command_failed",
        command=cmd,
        args=args,
        error=error_msg,
        error_type=type(exc).__name__,
        exit_code=int(exit_code),
    )

    ctx.output(None, status="error", error=error_msg, meta={"exit_code": int(exit_code)})

    if ctx.verbose and not ctx.json_output:
        click.echo("\nTraceback:", err=True)
        click.echo("".join(traceback.format_exception(exc)), err=True)

    return int(exit_code)


def handle_cli_success(
    ctx: CLIContext,
    data: Any,
    cmd: str,
    args: dict[str, Any],
    meta: dict[str, Any] | None = None,
    text: list[str] | None = None,
) -> int:
    """Handle CLI success and return success code.

    Args:
        ctx: CLI context
        data: Success data
        cmd: Command name
        args: Command arguments
        meta: Additional metadata
        text: Pre-rendered lines for human-readable mode

    Returns:
        Success exit code (0)
    """
    cli_logger.bind(trace_id=ctx.trace_id).info("command_completed", command=cmd, args=args)

    ctx.output(data, status="success", meta=meta, text=text)

    return int(ExitCode.SUCCESS)
