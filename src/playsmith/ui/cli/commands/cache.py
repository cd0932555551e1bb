"""Inspect and reset the compile cache."""

from __future__ import annotations

from datetime import datetime, timezone

from rich.table import Table
import typer

from playsmith.core.cache import CompileCache

from .._options import ConfigOption, CwdOption
from ..diagnostics import CliEmitter
from ..state import get_cli_state
from . import load_cli_config, resolve_workdir


app = typer.Typer(help="Inspect or reset the compile cache.")


def _format_timestamp(value: int | None) -> str:
    if value is None:
        return "-"
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def _open_cache(cwd: CwdOption, config: ConfigOption) -> CompileCache:
    workdir = resolve_workdir(cwd)
    settings = load_cli_config(config, workdir)
    return CompileCache(workdir, config=settings, emitter=CliEmitter(get_cli_state()))


@app.command()
def stats(cwd: CwdOption = None, config: ConfigOption = None) -> None:
    """Print a summary of the cache manifest."""
    cache = _open_cache(cwd, config)
    summary = cache.stats()

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Manifest", str(cache.manifest_path))
    table.add_row("Entries", str(summary.total_entries))
    table.add_row("Oldest", _format_timestamp(summary.oldest_entry))
    table.add_row("Newest", _format_timestamp(summary.newest_entry))
    get_cli_state().console.print(table)


@app.command()
def clear(cwd: CwdOption = None, config: ConfigOption = None) -> None:
    """Drop every cache entry; compiled outputs are left in place."""
    cache = _open_cache(cwd, config)
    removed = cache.stats().total_entries
    cache.clear()
    get_cli_state().console.print(f"Removed {removed} cache entries.")


__all__ = ["app", "clear", "stats"]
