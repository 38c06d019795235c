"""CLI commands for channel search, lookup, indexing, and index status."""

from __future__ import annotations

import json
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from nosbot.cli.errors import exit_with_error
from nosbot.cli.services import ServiceRegistry
from nosbot.models.channel import Channel, ChannelSearchHit
from nosbot.services.channels import IndexingTrigger
from nosbot.utils.progress import IndexingProgress


def register(app: typer.Typer, console: Console, services: ServiceRegistry) -> None:
    """Register channel-oriented CLI commands."""

    @app.command("search")
    def search(
        query: str = typer.Argument(..., help="Free-text channel search terms"),
        limit: int = typer.Option(5, "--limit", "-n", min=1, max=50, help="Maximum number of channels"),
        json_output: bool = typer.Option(False, "--json", help="Output matches as JSON"),
    ) -> None:
        """Search YouTube for channels by name."""

        try:
            hits = services.run(lambda: services.channel_service.search_channels(query, limit=limit))
        except Exception as exc:
            exit_with_error(console, exc)

        if json_output:
            typer.echo(json.dumps({"channels": [_hit_payload(hit) for hit in hits]}, ensure_ascii=False, indent=2))
            return

        if not hits:
            console.print(f"[yellow]No channels found for {query!r}.[/yellow]")
            return

        table = Table(title=f"Channels matching {query!r}")
        table.add_column("Channel ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="bold")
        table.add_column("Handle")
        for hit in hits:
            table.add_row(hit.youtube_id, hit.title, hit.handle or "-")
        console.print(table)

    @app.command("lookup")
    def lookup(
        query: str = typer.Argument(..., help="Channel handle, UC… id, or channel URL"),
        json_output: bool = typer.Option(False, "--json", help="Output channel details as JSON"),
    ) -> None:
        """Resolve a channel and store its metadata."""

        try:
            result = services.run(lambda: services.channel_service.lookup_channel(query))
        except Exception as exc:
            exit_with_error(console, exc)

        if json_output:
            payload = {**_channel_payload(result.channel), "cached": result.cached}
            typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
            return

        source = "cache" if result.cached else "YouTube"
        console.print(_channel_panel(result.channel, subtitle=f"from {source}"))

    @app.command("index")
    def index(
        channel: str = typer.Argument(..., help="Channel handle, UC… id, or channel URL"),
        quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress interactive output"),
    ) -> None:
        """Index every upload of a channel so playlists can be generated from it."""

        progress: Optional[Progress] = None
        if not quiet:
            progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
                transient=True,
            )

        async def _index(handler: Optional[Callable[[IndexingProgress], None]]) -> IndexingTrigger:
            channel_id = await services.resolve_channel_id(channel)
            return await services.channel_service.start_indexing(channel_id, on_progress=handler)

        try:
            if progress is None:
                trigger = services.run(lambda: _index(None))
            else:
                with progress as running_progress:
                    task_id = running_progress.add_task("Indexing", total=None)
                    handler = _progress_handler_factory(running_progress, task_id)
                    trigger = services.run(lambda: _index(handler))
        except Exception as exc:
            exit_with_error(console, exc)

        if quiet:
            payload = {
                "status": trigger.status,
                "message": trigger.message,
                "indexed_video_count": trigger.indexed_video_count,
            }
            if trigger.summary is not None:
                payload["pages"] = trigger.summary.pages
                payload["failed_upserts"] = trigger.summary.failed_upserts
                payload["stored_video_count"] = trigger.summary.stored_total
                payload["elapsed_seconds"] = round(trigger.summary.elapsed_seconds, 2)
            typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
            return

        console.print(f"[bold]{trigger.status}[/bold]: {trigger.message}")
        console.print(f"Indexed videos: {trigger.indexed_video_count}")
        if trigger.summary is not None and trigger.summary.stored_total > trigger.summary.indexed:
            console.print(f"Stored videos including earlier syncs: {trigger.summary.stored_total}")
        if trigger.summary is not None and trigger.summary.failed_upserts:
            console.print(f"[yellow]Videos skipped after parse or storage errors: {trigger.summary.failed_upserts}[/yellow]")

    @app.command("status")
    def status(
        channel: str = typer.Argument(..., help="Channel handle, UC… id, or channel URL"),
        json_output: bool = typer.Option(False, "--json", help="Output status as JSON"),
    ) -> None:
        """Show a channel's indexing status."""

        async def _status() -> Channel:
            channel_id = await services.resolve_channel_id(channel)
            return await services.channel_service.indexing_status(channel_id)

        try:
            stored = services.run(_status)
        except Exception as exc:
            exit_with_error(console, exc)

        if json_output:
            typer.echo(json.dumps(_channel_payload(stored), ensure_ascii=False, indent=2))
            return

        console.print(_channel_panel(stored))


def _progress_handler_factory(progress: Progress, task_id: TaskID) -> Callable[[IndexingProgress], None]:
    def handler(update: IndexingProgress) -> None:
        progress.update(
            task_id,
            total=update.expected_total,
            completed=update.indexed_count,
            description=update.message,
        )

    return handler


def _channel_payload(channel: Channel) -> dict[str, object]:
    return {
        "channel_id": channel.youtube_id,
        "title": channel.title,
        "handle": channel.handle,
        "thumbnail_url": channel.thumbnail_url,
        "upload_playlist_id": channel.upload_playlist_id,
        "index_status": channel.index_status.value,
        "indexed_video_count": channel.indexed_video_count,
        "total_video_count": channel.total_video_count,
        "last_synced_at": channel.last_synced_at.isoformat() if channel.last_synced_at else None,
    }


def _hit_payload(hit: ChannelSearchHit) -> dict[str, object]:
    return {
        "channel_id": hit.youtube_id,
        "title": hit.title,
        "handle": hit.handle,
        "thumbnail_url": hit.thumbnail_url,
        "description": hit.description,
    }


def _channel_panel(channel: Channel, *, subtitle: Optional[str] = None) -> Panel:
    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Channel ID", channel.youtube_id)
    grid.add_row("Handle", channel.handle or "-")
    grid.add_row("Status", channel.index_status.value)
    grid.add_row("Indexed", f"{channel.indexed_video_count} / {channel.total_video_count}")
    grid.add_row("Last synced", channel.last_synced_at.isoformat() if channel.last_synced_at else "never")
    return Panel.fit(grid, title=channel.title, subtitle=subtitle, border_style="green")


__all__ = ["register"]
