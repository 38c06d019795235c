"""CLI entry point and application wiring."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from nosbot.cli.commands import register_commands
from nosbot.cli.services import ServiceRegistry


class CLIApplication:
    """Central orchestrator for the Nosbot Typer application."""

    def __init__(self, console: Optional[Console] = None, services: Optional[ServiceRegistry] = None) -> None:
        self.console = console or Console()
        self.services = services or ServiceRegistry(self.console)
        self._app = typer.Typer(add_completion=False, rich_markup_mode="rich")
        register_commands(self._app, self.console, self.services)

    @property
    def app(self) -> typer.Typer:
        """Return the underlying Typer application instance."""

        return self._app

    def run(self, *, prog_name: Optional[str] = None, args: Optional[list[str]] = None) -> None:
        """Invoke the Typer application with optional overrides."""

        self._app(prog_name=prog_name, args=args)


def create_app(console: Optional[Console] = None, services: Optional[ServiceRegistry] = None) -> typer.Typer:
    """Factory helper that returns the configured Typer application."""

    return CLIApplication(console=console, services=services).app


def main() -> None:
    """Console script entry point for `python -m nosbot` or the installed CLI."""

    CLIApplication().run(prog_name="nosbot")


__all__ = ["CLIApplication", "create_app", "main"]
