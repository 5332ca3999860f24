"""Command-line interface."""

from .cli_common import CLIContext, ExitCode
from .gestum_metrics import cli, main

__all__ = ["CLIContext", "ExitCode", "cli", "main"]
