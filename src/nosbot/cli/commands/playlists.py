"""CLI commands for generating playlists and browsing playlist history."""

from __future__ import annotations

import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nosbot.cli.errors import exit_with_error
from nosbot.cli.services import ServiceRegistry
from nosbot.models.playlist import GeneratedPlaylist, PlaylistFilters, PlaylistResult
from nosbot.utils.duration import format_duration, format_view_count


def register(app: typer.Typer, console: Console, services: ServiceRegistry) -> None:
    """Register playlist CLI commands."""

    @app.command("generate")
    def generate(  # pylint: disable=too-many-arguments
        channel: str = typer.Argument(..., help="Channel handle, UC… id, or channel URL"),
        count: Optional[int] = typer.Option(None, "--count", "-n", help="Playlist length (1-25)"),
        shuffle: bool = typer.Option(True, "--shuffle/--no-shuffle", help="Shuffle matches before truncating"),
        year_start: Optional[int] = typer.Option(None, "--year-start", help="Earliest publish year"),
        year_end: Optional[int] = typer.Option(None, "--year-end", help="Latest publish year"),
        keywords: Optional[str] = typer.Option(None, "--keywords", help="Comma-separated keywords (any match)"),
        min_duration: Optional[int] = typer.Option(None, "--min-duration", help="Minimum length in seconds"),
        max_duration: Optional[int] = typer.Option(None, "--max-duration", help="Maximum length in seconds"),
        deep_cuts: bool = typer.Option(False, "--deep-cuts", help="Only the least-viewed quarter"),
        exclude_shorts: bool = typer.Option(False, "--exclude-shorts", help="Skip videos under a minute"),
        topic: Optional[str] = typer.Option(None, "--topic", help="Free-text topic for relevance ranking"),
        user: Optional[str] = typer.Option(None, "--user", help="Save the playlist under this user id"),
        json_output: bool = typer.Option(False, "--json", help="Output the playlist as JSON"),
    ) -> None:
        """Generate a playlist from an indexed channel."""

        try:
            filters = PlaylistFilters(
                year_start=year_start,
                year_end=year_end,
                keywords=_parse_keywords(keywords),
                min_duration=min_duration,
                max_duration=max_duration,
                deep_cuts=deep_cuts,
                exclude_shorts=exclude_shorts,
                topic_prompt=topic,
            )
            requested = count if count is not None else int(services.settings.default_playlist_size)

            async def _generate() -> PlaylistResult:
                channel_id = await services.resolve_channel_id(channel)
                return await services.playlist_generator.generate_playlist(
                    channel_id,
                    filters,
                    count=requested,
                    shuffle=shuffle,
                    user_id=user,
                )

            result = services.run(_generate)
        except Exception as exc:
            exit_with_error(console, exc)

        if json_output:
            typer.echo(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
            return

        _render_playlist(console, result)

    @app.command("history")
    def history(
        user: str = typer.Argument(..., help="User id whose playlists to list"),
        limit: int = typer.Option(50, "--limit", help="Maximum playlists to show"),
        json_output: bool = typer.Option(False, "--json", help="Output history as JSON"),
    ) -> None:
        """List a user's saved playlists, most recent first."""

        try:
            playlists = services.run(lambda: services.playlist_generator.list_history(user, limit=limit))
        except Exception as exc:
            exit_with_error(console, exc)

        if json_output:
            typer.echo(
                json.dumps([playlist.model_dump(mode="json") for playlist in playlists], ensure_ascii=False, indent=2)
            )
            return

        _render_history(console, playlists)


def _parse_keywords(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    return [keyword.strip() for keyword in raw.split(",") if keyword.strip()] or None


def _render_playlist(console: Console, result: PlaylistResult) -> None:
    table = Table(title=f"Playlist {result.playlist_id}")
    table.add_column("#", justify="right")
    table.add_column("Title", overflow="fold")
    table.add_column("Published")
    table.add_column("Length", justify="right")
    table.add_column("Views", justify="right")

    for position, video in enumerate(result.videos, start=1):
        table.add_row(
            str(position),
            video.title,
            video.published_at.date().isoformat(),
            format_duration(video.duration),
            format_view_count(video.view_count),
        )

    console.print(table)
    if result.ai_reasoning:
        console.print(Panel.fit(result.ai_reasoning, title="Selection", border_style="magenta"))
    if result.shortfall:
        console.print(
            f"[yellow]Only {len(result.videos)} of {result.requested_count} requested videos matched the topic.[/yellow]"
        )
    console.print(f"[bold]Watch:[/bold] {result.watch_url}")


def _render_history(console: Console, playlists: List[GeneratedPlaylist]) -> None:
    if not playlists:
        console.print("[yellow]No saved playlists.[/yellow]")
        return

    table = Table(title="Playlist History")
    table.add_column("Created")
    table.add_column("Videos", justify="right")
    table.add_column("Filters", overflow="fold")
    table.add_column("Watch URL", overflow="fold")

    for playlist in playlists:
        table.add_row(
            playlist.created_at.isoformat() if playlist.created_at else "-",
            str(len(playlist.video_ids)),
            json.dumps(playlist.filters, ensure_ascii=False) if playlist.filters else "-",
            playlist.watch_url,
        )

    console.print(table)


__all__ = ["register"]
