"""CLI commands for database migrations and quota reporting."""

from __future__ import annotations

import json

import typer
from rich.console import Console

from nosbot.cli.errors import exit_with_error
from nosbot.cli.services import ServiceRegistry
from nosbot.db.migrate import run_migrations


def register(app: typer.Typer, console: Console, services: ServiceRegistry) -> None:
    """Register maintenance CLI commands."""

    @app.command("migrate")
    def migrate() -> None:
        """Apply pending SQL migrations."""

        try:
            applied = run_migrations(console=console, dsn=str(services.settings.database_url))
        except Exception as exc:
            exit_with_error(console, exc)

        if not applied:
            console.print("[green]Database schema is up to date.[/green]")

    @app.command("quota")
    def quota(
        json_output: bool = typer.Option(False, "--json", help="Output usage as JSON"),
    ) -> None:
        """Show YouTube Data API units used today (UTC)."""

        try:
            usage = services.quota_tracker.usage_today()
        except Exception as exc:
            exit_with_error(console, exc)

        if json_output:
            payload = {"used": usage.used, "limit": usage.limit, "remaining": usage.remaining}
            typer.echo(json.dumps(payload, indent=2))
            return

        style = "red" if usage.exhausted else "green"
        console.print(f"[{style}]{usage.used}[/{style}] of {usage.limit} units used today ({usage.remaining} remaining)")


__all__ = ["register"]
