"""Command-line entry point for the results cache."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from resultscache.config import MAX_GRACE_SECONDS, Settings, load_settings
from resultscache.errors import ResultsCacheError
from resultscache.services.cache import REQUIRED_ATTRS, ResultsCache
from resultscache.storage.backend import StorageError
from resultscache.storage.sqlite_store import SQLiteBlobStore

log = logging.getLogger(__name__)

app = typer.Typer(help="Store results under generated keys and sweep stale ones.", no_args_is_help=True)
err_console = Console(stderr=True)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


@app.callback()
def _main(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path."),
) -> None:
    settings = load_settings()
    if db is not None:
        settings = settings.model_copy(update={"db_path": db})
    _setup_logging(settings.log_level)
    ctx.obj = settings


@contextmanager
def _open_cache(settings: Settings) -> Iterator[ResultsCache]:
    """Open a cache on the configured database, mapping failures to exit code 2."""
    try:
        store = SQLiteBlobStore(settings.db_path, REQUIRED_ATTRS)
    except StorageError as exc:
        err_console.print(f"[red]Cannot open {settings.db_path}:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    try:
        with ResultsCache(store) as cache:
            yield cache
    except ResultsCacheError as exc:
        log.debug("Cache operation failed", exc_info=True)
        err_console.print(f"[red]Error ({exc.kind.value}):[/red] {exc}")
        raise typer.Exit(code=2) from exc


@app.command()
def put(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="File to store, or '-' for stdin."),
    ttl: bool = typer.Option(False, "--ttl", help="Also arm a TTL marker."),
) -> None:
    """Store a result and print its key."""
    try:
        payload = sys.stdin.buffer.read() if source == "-" else Path(source).read_bytes()
    except OSError as exc:
        err_console.print(f"[red]Cannot read {source}:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    with _open_cache(ctx.obj) as cache:
        key = cache.put(payload)
        if not key:
            err_console.print("[yellow]Result was not stored[/yellow]")
            raise typer.Exit(code=1)
        if ttl:
            cache.add_time_to_live(key)
    typer.echo(key)


@app.command()
def get(
    ctx: typer.Context,
    key: str,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout."),
) -> None:
    """Print a stored result."""
    with _open_cache(ctx.obj) as cache:
        payload = cache.get(key)
    if payload is None:
        err_console.print(f"[yellow]No result for {key}[/yellow]")
        raise typer.Exit(code=1)
    if output is not None:
        output.write_bytes(payload)
    else:
        typer.echo(payload, nl=False)


@app.command()
def touch(
    ctx: typer.Context,
    key: str,
    update: bool = typer.Option(False, "--update", help="Replace an existing marker."),
) -> None:
    """Arm (or re-arm) the TTL marker for a result."""
    with _open_cache(ctx.obj) as cache:
        if update:
            cache.update_time_to_live(key)
        else:
            cache.add_time_to_live(key)


@app.command()
def sweep(
    ctx: typer.Context,
    grace: Optional[float] = typer.Option(
        None, "--grace", min=0, max=MAX_GRACE_SECONDS, help="Grace in seconds (default from settings).",
    ),
) -> None:
    """Delete results whose TTL has expired."""
    settings: Settings = ctx.obj
    window = timedelta(seconds=grace) if grace is not None else settings.ttl_grace
    with _open_cache(settings) as cache:
        removed = cache.process_time_to_live(window)
    typer.echo(f"Removed {len(removed)} expired result(s)")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
