"""CLI interface for recstream.

Typer-based command-line interface with Rich output formatting.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from recstream import __version__
from recstream.config import CONFIG_FILE, RecstreamConfig, default_config, load_config
from recstream.exceptions import RecstreamError
from recstream.pipeline import read_parallel
from recstream.resolve import resolve_paths
from recstream.streamer import open_streamer

__all__ = ["app"]

app = typer.Typer(
    name="recstream",
    help="Stream JSON records from files, directories and .list manifests (gzip aware).",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

PathArg = Annotated[str, typer.Argument(help="File, directory, or .list manifest")]
ExtOption = Annotated[
    list[str] | None,
    typer.Option("--ext", "-e", help="Extra extension to accept in directories (repeatable)"),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help=f"Config file (default: ./{CONFIG_FILE} if present)"),
]


def _load_settings(config_path: Path | None) -> RecstreamConfig:
    if config_path is not None:
        return load_config(config_path)
    local = Path.cwd() / CONFIG_FILE
    if local.is_file():
        return load_config(local)
    return default_config()


def _fail(message: str, error: Exception) -> typer.Exit:
    console.print(f"[red]{message}:[/red] {error}")
    return typer.Exit(code=1)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress to stderr"),
    ] = False,
) -> None:
    """recstream command-line tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def version() -> None:
    """Show recstream version."""
    console.print(f"recstream {__version__}")


@app.command()
def files(path: PathArg, ext: ExtOption = None, config: ConfigOption = None) -> None:
    """List the member files a path resolves to, in read order."""
    try:
        settings = _load_settings(config)
        resolved = resolve_paths(
            path,
            ext or settings.stream.extensions,
            manifest_extension=settings.stream.manifest_extension,
            compressed_extension=settings.stream.compressed_extension,
        )
    except RecstreamError as e:
        raise _fail("Cannot resolve path", e) from e

    for member in resolved:
        typer.echo(str(member))


@app.command()
def cat(
    path: PathArg,
    ext: ExtOption = None,
    config: ConfigOption = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=0, help="Stop after this many records"),
    ] = None,
) -> None:
    """Print every record, in file order, as one JSON document per line."""
    try:
        settings = _load_settings(config)
        with open_streamer(path, ext or (), config=settings) as streamer:
            records = streamer if limit is None else itertools.islice(streamer, limit)
            for record in records:
                typer.echo(json.dumps(record, ensure_ascii=False))
    except RecstreamError as e:
        raise _fail("Failed reading records", e) from e


@app.command()
def count(
    path: PathArg,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", help="Worker threads (default: [pipeline] workers)"),
    ] = None,
    ext: ExtOption = None,
    config: ConfigOption = None,
) -> None:
    """Count records per file using the parallel decoder."""
    try:
        settings = _load_settings(config)
        per_file: Counter[Path] = Counter()
        with read_parallel(path, workers, ext or (), config=settings) as run:
            for result in run:
                if result.ok:
                    per_file[result.path] += 1
            failures = list(run.errors)
            members = run.files
    except RecstreamError as e:
        raise _fail("Failed counting records", e) from e

    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("file", style="dim")
    table.add_column("records", style="bold", justify="right")
    for member in members:
        table.add_row(str(member), str(per_file[member]))
    console.print(table)
    console.print(f"\n[green]{sum(per_file.values())} records[/green] in {len(members)} file(s)")

    if failures:
        for failure in failures:
            console.print(f"  [red]Failed {failure.path}:[/red] {failure.error}")
        raise typer.Exit(code=1)
