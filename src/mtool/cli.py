"""
mtool CLI - main entry point using Typer.

One command, switched by `-mode`. The single-dash option names match the
folder-processing workflow the tool has always been driven with, e.g.

    mtool -mode get -i ./videos -ow ./done -on ./review -rename -automate
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table
from rich.traceback import install

from .commands import STAGES
from .core.config import build_run_config
from .core.errors import ConfigurationError, RunAborted
from .core.logging_util import setup_logging
from .core.pipeline import RunReport, run_stage

# Install a rich traceback handler for readable exceptions
install(show_locals=False)

console = Console()

app = typer.Typer(
    name="mtool",
    help="🎞️ metadata-tool - identify local video files and attach verified source metadata.",
    epilog="Modes: guess | find | get | separate. Use `mtool --help` for all options.",
    pretty_exceptions_enable=False,
)


def _print_summary(report: RunReport) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Outcome")
    table.add_column("Files", justify="right")
    for status, count in sorted(report.counts().items()):
        table.add_row(status, str(count))
    console.print(table)


@app.command()
def main(
    mode: str = typer.Option("", "-mode", "--mode", help="Run mode: guess|find|get|separate."),
    input_dir: Optional[Path] = typer.Option(
        None, "-i", help="Input directory (defaults to the current directory)."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "-o", help="guess: base folder for the per-site folders."
    ),
    found_dir: Optional[Path] = typer.Option(
        None, "-ow", help="Destination for files with metadata (find/get/separate)."
    ),
    missing_dir: Optional[Path] = typer.Option(
        None, "-on", help="Destination for files without metadata (find/get/separate)."
    ),
    site: Optional[str] = typer.Option(None, "-site", help="Site override (e.g. youtube, imgur)."),
    rename: bool = typer.Option(False, "-rename", help="Rename files to '<title> - <id>'."),
    match_title: bool = typer.Option(
        False, "-matchtitle", help="find: also require the title to match the filename."
    ),
    use_filename: bool = typer.Option(
        False, "-use-filename", help="get: fall back to the filename as the id."
    ),
    automate: bool = typer.Option(False, "-automate", help="Do not ask for confirmation."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable DEBUG-level logging."),
    quiet: bool = typer.Option(False, "--quiet", help="Reduce logging to warnings and errors."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines to stdout."),
    version: bool = typer.Option(
        False, "--version", help="Show the application version and exit.", is_eager=True
    ),
):
    """
    Process every video file in a folder with the selected mode.
    """
    if version:
        from . import __version__

        console.print(f"mtool v{__version__}")
        raise typer.Exit()

    setup_logging(json_logs=json_logs, verbose=verbose, quiet=quiet)

    mode = mode.lower()
    stage_cls = STAGES.get(mode)
    if stage_cls is None:
        console.print(f"[yellow]Unknown mode {mode}[/yellow]")
        raise typer.Exit()

    config = build_run_config(
        mode,
        input_dir=input_dir,
        output_dir=output_dir,
        found_dir=found_dir,
        missing_dir=missing_dir,
        site_override=site,
        rename=rename,
        match_title=match_title,
        use_filename=use_filename,
        interactive=not automate,
    )
    if not config.input_dir.is_dir():
        console.print(f"[red]Error: Path is not a directory: {config.input_dir}[/red]")
        raise typer.Exit(1)

    try:
        stage = stage_cls(config)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold]Mode:[/bold] {stage.title}")
    for label, value in stage.describe():
        console.print(f"{label}: [blue]{value}[/blue]")

    if config.interactive and not Confirm.ask("Continue?", default=True):
        raise typer.Exit()

    try:
        report = run_stage(stage)
    except RunAborted as e:
        console.print(f"[bold red]Run aborted:[/bold red] {e}")
        raise typer.Exit(1)

    _print_summary(report)


def cli():
    """Main entry point for the console script defined in pyproject.toml."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Operation cancelled by user.[/yellow]")
        raise typer.Exit()


if __name__ == "__main__":
    cli()
