import json
import logging
import time
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shared.models import Track, tracks_from_records

from . import config
from .engine import PlaybackEngine
from .errors import HistoryError
from .history import ApiHistory, HistoryStore, LocalHistory

console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def build_history(api_url: Optional[str], token: Optional[str], history_file: Path) -> HistoryStore:
    """Remote history when an API is configured, a local file otherwise."""
    if api_url:
        return ApiHistory(api_url, token=token, timeout=config.NETWORK_TIMEOUT)
    return LocalHistory(history_file)


def format_time(seconds: float) -> str:
    if not seconds or seconds != seconds:  # 0 or NaN
        return "0:00"
    return f"{int(seconds // 60)}:{int(seconds % 60):02d}"


def load_tracks(path: Path) -> List[Track]:
    """
    Read tracks from a JSON export of the catalog API.

    Accepts a bare list of records or an API response wrapping one under
    ``tracks``, ``songs`` or ``episodes``.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        for key in ("tracks", "songs", "episodes"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            raise click.BadParameter(f"No track list found in {path}")
    if not isinstance(data, list):
        raise click.BadParameter(f"No track list found in {path}")
    return tracks_from_records(data)


def render_progress(engine: PlaybackEngine) -> Panel:
    state = engine.state
    track = state.current_track
    total = state.duration or (track.duration if track else 0) or 1
    percent = min(100, (state.current_time / total) * 100)

    status = Text()
    if track:
        status.append(f"{track.title}\n", style="bold green")
        status.append(f"{track.artist}\n", style="cyan")
    status.append(f"{format_time(state.current_time)} ", style="cyan")
    status.append("━" * int(percent / 2), style="blue")
    status.append(" " * (50 - int(percent / 2)), style="grey50")
    status.append(f" {format_time(state.duration)}", style="cyan")

    title = f"Now Playing ({state.current_index + 1}/{len(state.queue)})"
    nav = f"{'⏮' if state.has_previous else ' '} {'⏭' if state.has_next else ' '}"
    return Panel(status, title=title, subtitle=nav)


@click.group()
@click.option('--log-level', default=config.LOG_LEVEL, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option('--api-url', default=config.API_BASE_URL, help="History API base URL.")
@click.option('--token', default=config.API_TOKEN, help="Bearer token for the history API.")
@click.option('--history-file', default=config.HISTORY_FILE, type=click.Path(path_type=Path),
              help="Local history file, used when no API URL is set.")
@click.pass_context
def cli(ctx, log_level, api_url, token, history_file):
    """🎵 Soundstream player"""
    setup_logging(log_level)
    ctx.obj = build_history(api_url, token, history_file)


@cli.command()
@click.argument('tracks_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--start', 'start_id', help="Id of the track to start from.")
@click.option('--volume', type=click.FloatRange(0.0, 1.0), default=1.0, show_default=True)
@click.pass_obj
def play(history, tracks_file, start_id, volume):
    """Play a JSON list of tracks, resuming where you left off."""
    try:
        from .mpv_sink import MpvSink
    except OSError:
        console.print(Panel.fit(
            "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
            "The player requires the [cyan]libmpv[/cyan] library to work.\n\n"
            "Please install it:\n"
            "• Ubuntu/Debian: [green]sudo apt install libmpv2[/green]\n"
            "• Fedora: [green]sudo dnf install mpv-libs[/green]\n"
            "• Arch: [green]sudo pacman -S mpv[/green]",
            border_style="red"
        ))
        return

    tracks = load_tracks(tracks_file)
    if not tracks:
        console.print("[yellow]No playable tracks found.[/yellow]")
        return

    start = tracks[0]
    if start_id:
        matches = [t for t in tracks if t.id == start_id]
        if not matches:
            console.print(f"[red]No track with id {start_id}.[/red]")
            return
        start = matches[0]

    sink = MpvSink()
    engine = PlaybackEngine(sink, history, save_delay=config.SAVE_DELAY_SEC)
    engine.change_volume(volume)
    engine.play_track(start, tracks)

    try:
        with Live(render_progress(engine), console=console, refresh_per_second=4) as live:
            while engine.is_playing:
                live.update(render_progress(engine))
                time.sleep(0.25)
        console.print("[green]✓ Queue finished.[/green]")
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    finally:
        engine.close()
        sink.close()


@cli.command()
@click.option('--limit', default=20, show_default=True, type=click.IntRange(1, 500))
@click.pass_obj
def recent(history, limit):
    """Show recently played tracks and episodes."""
    try:
        entries = history.list_recent(limit)
    except HistoryError as e:
        console.print(f"[red]Could not load history: {e}[/red]")
        raise SystemExit(1)

    if not entries:
        console.print("[yellow]Nothing played yet.[/yellow]")
        return

    table = Table(title=f"Recently played ({len(entries)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist / Host", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Position", style="magenta")
    table.add_column("Plays", justify="right")

    for entry in entries:
        content = entry.content
        table.add_row(
            entry.id,
            content.title if content else "?",
            content.artist if content else "",
            entry.kind.value,
            format_time(entry.last_position),
            str(entry.play_count),
        )
    console.print(table)


@cli.command()
@click.argument('entry_id')
@click.pass_obj
def forget(history, entry_id):
    """Delete one history entry."""
    try:
        deleted = history.delete_entry(entry_id)
    except HistoryError as e:
        console.print(f"[red]Could not delete entry: {e}[/red]")
        raise SystemExit(1)
    if deleted:
        console.print(f"[green]✓ Removed {entry_id}.[/green]")
    else:
        console.print(f"[yellow]No history entry {entry_id}.[/yellow]")


if __name__ == '__main__':
    cli()
