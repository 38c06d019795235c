"""Exit codes and error reporting shared by CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer
from psycopg2 import Error as DatabaseError
from pydantic import ValidationError
from rich.console import Console

from nosbot.db.repositories import RepositoryError
from nosbot.errors import (
    EmptyResultError,
    InputValidationError,
    NotFoundError,
    NotReadyError,
    UnconfiguredError,
    UpstreamError,
)


class CLIExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    NOT_FOUND = 2
    NOT_READY = 3
    NO_RESULTS = 4
    UPSTREAM_ERROR = 5
    STORAGE_ERROR = 6
    UNCONFIGURED = 7
    UNEXPECTED_ERROR = 10


def exit_with_error(console: Console, exc: Exception) -> NoReturn:
    """Print an actionable message for ``exc`` and exit with the matching code."""

    if isinstance(exc, (InputValidationError, ValidationError)):
        console.print(f"[red]Invalid input:[/red] {exc}")
        code = CLIExitCode.INVALID_INPUT
    elif isinstance(exc, NotFoundError):
        console.print(f"[red]Not found:[/red] {exc}")
        code = CLIExitCode.NOT_FOUND
    elif isinstance(exc, NotReadyError):
        console.print(f"[yellow]{exc}[/yellow] Run `nosbot index <channel>` first.")
        code = CLIExitCode.NOT_READY
    elif isinstance(exc, EmptyResultError):
        console.print(f"[yellow]{exc}[/yellow]")
        code = CLIExitCode.NO_RESULTS
    elif isinstance(exc, UnconfiguredError):
        console.print(f"[red]Configuration error:[/red] {exc}")
        code = CLIExitCode.UNCONFIGURED
    elif isinstance(exc, UpstreamError):
        status = f" (HTTP {exc.status_code})" if exc.status_code else ""
        console.print(f"[red]Upstream error{status}:[/red] {exc}")
        code = CLIExitCode.UPSTREAM_ERROR
    elif isinstance(exc, (RepositoryError, DatabaseError)):
        console.print(f"[red]Storage error:[/red] {exc}")
        code = CLIExitCode.STORAGE_ERROR
    else:
        console.print(f"[red]Unexpected error:[/red] {exc}")
        code = CLIExitCode.UNEXPECTED_ERROR
    raise typer.Exit(code=code) from exc


__all__ = ["CLIExitCode", "exit_with_error"]
