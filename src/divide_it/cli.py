"""Command-line interface for divide-it.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from divide_it import __version__
from divide_it.config import Settings, load_settings
from divide_it.errors import DivideItError, format_error_for_display
from divide_it.ffmpeg import FFmpegWrapper
from divide_it.ffmpeg_binary import get_ffmpeg_info
from divide_it.logging import LogLevel, enable_file_logging, set_verbosity
from divide_it.models import SplitResult
from divide_it.orchestrator import Orchestrator, SplitRequest
from divide_it.providers import provider_status
from divide_it.registry import ArtifactRegistry
from divide_it.video.portrait import PortraitConfig

app = typer.Typer(
    name="divide-it",
    help="Split a video into randomly placed portrait clips with transcripts, summaries and titles.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def load_env_files(local_env: Path | None = None, user_env: Path | None = None) -> None:
    """Load variables from .env files without touching ones already set.

    Priority: real environment > local .env > ~/.divide-it/.env, so the
    local file is read first.
    """
    local_env = local_env or Path.cwd() / ".env"
    user_env = user_env or Path.home() / ".divide-it" / ".env"
    for path in (local_env, user_env):
        if path.exists():
            load_dotenv(path)


load_env_files()

# --quiet/--verbose win over the config file's logging.verbosity
_verbosity_from_flags = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"divide-it version {__version__}")
        raise typer.Exit()


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(format_error_for_display(error))}")
    raise typer.Exit(1)


def _settings(config: Path | None, output: Path | None = None) -> Settings:
    settings = load_settings(config)
    if not _verbosity_from_flags:
        set_verbosity(LogLevel(settings.logging.verbosity))
    if settings.logging.log_file:
        enable_file_logging(Path(settings.logging.log_file), settings.logging.json_format)
    if output is not None:
        settings.output_root = output
    return settings


def _short(text: str | None, limit: int = 40) -> str:
    if text is None:
        return "-"
    text = " ".join(text.split())
    return escape(text if len(text) <= limit else text[: limit - 3] + "...")


def _segments_table(result: SplitResult) -> Table:
    table = Table(title=f"Segments for {result.asset_id} ({len(result.artifacts)} of {result.requested_count})")
    table.add_column("#", style="dim", width=3)
    table.add_column("Time", style="white")
    table.add_column("File", style="cyan")
    table.add_column("Title", style="green", max_width=30)
    table.add_column("Summary", style="dim", max_width=40)
    table.add_column("Overlay", justify="center")
    table.add_column("Errors", style="red", max_width=30)

    for artifact in result.artifacts:
        window = artifact.window
        table.add_row(
            str(window.index),
            f"{window.start_time:.2f}s - {window.end_time:.2f}s",
            artifact.output_path.name,
            _short(artifact.social_title, 30),
            _short(artifact.summary_text),
            "[green]yes[/green]" if artifact.overlay_applied else "no",
            ", ".join(sorted(artifact.stage_errors)) or "-",
        )
    return table


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Show detailed progress."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only show errors."),
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Also write a full debug log to this file."),
    ] = None,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Divide It - random portrait clips from a longer video.

    [bold]split[/bold] cuts clips and enriches them, [bold]retitle[/bold] re-applies the title
    overlay, [bold]show[/bold] lists what an earlier split produced.
    """
    global _verbosity_from_flags
    _verbosity_from_flags = quiet or verbose
    if quiet:
        set_verbosity(LogLevel.QUIET)
    elif verbose:
        set_verbosity(LogLevel.VERBOSE)
    if log_file is not None:
        enable_file_logging(log_file)


@app.command()
def split(
    video: Annotated[Path, typer.Argument(help="Video file to split")],
    count: Annotated[
        int,
        typer.Option("--count", "-n", help="Number of segments to cut (1-20)"),
    ] = 5,
    min_duration: Annotated[
        float,
        typer.Option("--min-duration", help="Shortest segment in seconds"),
    ] = 5.0,
    max_duration: Annotated[
        float,
        typer.Option("--max-duration", help="Longest segment in seconds"),
    ] = 60.0,
    no_enrich: Annotated[
        bool,
        typer.Option("--no-enrich", help="Skip transcription, summaries and titles"),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output root directory"),
    ] = None,
    asset_id: Annotated[
        Optional[str],
        typer.Option("--asset-id", help="Name of the output directory for this video"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="JSON settings file"),
    ] = None,
) -> None:
    """Cut random portrait segments out of VIDEO."""
    try:
        request = SplitRequest.build(
            count=count,
            min_duration=min_duration,
            max_duration=max_duration,
            enrich=not no_enrich,
        )
        settings = _settings(config, output)
        orchestrator = Orchestrator.from_settings(settings, with_providers=request.enrich)

        with console.status(f"Splitting {video.name}..."):
            result = orchestrator.split(video, request, asset_id=asset_id)
    except DivideItError as e:
        _fail(e)
        return

    console.print(_segments_table(result))
    console.print(f"\n[green]Done.[/green] Output in {orchestrator.registry.asset_dir(result.asset_id)}")
    if len(result.artifacts) < result.requested_count:
        console.print(
            f"[yellow]Note:[/yellow] only {len(result.artifacts)} of {result.requested_count} "
            "segments fit in this video."
        )


@app.command()
def probe(
    video: Annotated[Path, typer.Argument(help="Video file to inspect")],
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="JSON settings file"),
    ] = None,
) -> None:
    """Show what ffprobe reports for VIDEO."""
    try:
        settings = _settings(config)
        transcoder = FFmpegWrapper(settings.ffmpeg, PortraitConfig.from_settings(settings.portrait))
        source = transcoder.probe(video)
    except DivideItError as e:
        _fail(e)
        return

    lines = [
        f"[bold]Duration:[/bold] {source.duration_seconds:.2f}s",
        f"[bold]Resolution:[/bold] {source.width}x{source.height}",
        f"[bold]Container:[/bold] {source.container_format or '-'}",
        f"[bold]Size:[/bold] {source.size_bytes / (1024 * 1024):.1f} MB",
        f"[bold]Audio:[/bold] {'yes' if source.has_audio else 'no'}",
    ]
    console.print(Panel("\n".join(lines), title=str(source.path), expand=False))


@app.command()
def retitle(
    asset_id: Annotated[str, typer.Argument(help="Asset id from an earlier split")],
    segment: Annotated[
        Optional[int],
        typer.Option("--segment", "-s", help="Only this segment number"),
    ] = None,
    title: Annotated[
        Optional[str],
        typer.Option("--title", "-t", help="Replacement title text"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output root directory"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="JSON settings file"),
    ] = None,
) -> None:
    """Burn the title into segments again, replacing any existing title box."""
    try:
        settings = _settings(config, output)
        orchestrator = Orchestrator.from_settings(settings, with_providers=False)
        with console.status(f"Retitling {asset_id}..."):
            result = orchestrator.retitle(asset_id, segment_index=segment, title=title)
    except DivideItError as e:
        _fail(e)
        return

    console.print(_segments_table(result))


@app.command()
def show(
    asset_id: Annotated[str, typer.Argument(help="Asset id from an earlier split")],
    recover: Annotated[
        bool,
        typer.Option("--recover", help="Rebuild the manifest by scanning the directory"),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output root directory"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="JSON settings file"),
    ] = None,
) -> None:
    """List the segments of an earlier split."""
    try:
        settings = _settings(config, output)
        registry = ArtifactRegistry(settings.output_root)
        result = registry.recover(asset_id) if recover else registry.get(asset_id)
    except DivideItError as e:
        _fail(e)
        return

    console.print(_segments_table(result))
    if result.source.path != Path(""):
        console.print(f"[dim]Source: {result.source.path} ({result.source.duration_seconds:.2f}s)[/dim]")


@app.command()
def providers(
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="JSON settings file"),
    ] = None,
) -> None:
    """Show which transcription and summarization providers can be used."""
    try:
        settings = _settings(config)
    except DivideItError as e:
        _fail(e)
        return

    table = Table(title="Provider Status")
    table.add_column("Kind", style="cyan")
    table.add_column("Provider", style="white")
    table.add_column("Status")

    ffmpeg_info = get_ffmpeg_info(settings.ffmpeg)
    if ffmpeg_info.available:
        table.add_row("transcoder", "ffmpeg", f"[green]Available[/green] (v{ffmpeg_info.version}, {ffmpeg_info.source})")
    else:
        table.add_row("transcoder", "ffmpeg", "[red]Not found[/red]")

    selected: set[str] = set()
    for kind, name, available in provider_status(settings):
        if available and kind not in selected:
            selected.add(kind)
            status = "[green]Available[/green] (selected)"
        elif available:
            status = "[green]Available[/green]"
        else:
            status = "[dim]Unavailable[/dim]"
        table.add_row(kind, name, status)

    console.print(table)


if __name__ == "__main__":
    app()
