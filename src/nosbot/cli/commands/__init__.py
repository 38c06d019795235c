"""Command registration utilities for the Nosbot CLI."""

from __future__ import annotations

import typer
from rich.console import Console

from nosbot.cli.commands import admin, channels, playlists
from nosbot.cli.services import ServiceRegistry


def register_commands(app: typer.Typer, console: Console, services: ServiceRegistry) -> None:
    """Attach command groups to the provided Typer application."""

    channels.register(app, console, services)
    playlists.register(app, console, services)
    admin.register(app, console, services)

    @app.callback(invoke_without_command=True)
    def main_callback(ctx: typer.Context) -> None:
        """Curate YouTube playlists from a channel's back catalog."""

        if ctx.invoked_subcommand is None:
            console.print("[bold green]Nosbot CLI ready for commands.[/bold green] Try `nosbot --help`.")


__all__ = ["register_commands"]
