"""Batch-compile generated modules whose cached output is stale."""

from __future__ import annotations

import asyncio

from rich.table import Table
import typer

from playsmith.api import compile_pending
from playsmith.core.exceptions import exception_hint

from .._options import ConfigOption, CwdOption
from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state
from . import load_cli_config, resolve_workdir


_STATUS_STYLES = {"fresh": "dim", "compiled": "green", "failed": "red"}


def compile_modules(cwd: CwdOption = None, config: ConfigOption = None) -> None:
    """Compile every generated module that is missing or out of date."""
    workdir = resolve_workdir(cwd)
    settings = load_cli_config(config, workdir)
    state = get_cli_state()
    results = asyncio.run(compile_pending(workdir, settings, emitter=CliEmitter(state)))

    if not results:
        state.console.print("No generated modules found.")
        return

    table = Table(title="Generated modules", header_style="bold cyan")
    table.add_column("Module", style="magenta")
    table.add_column("Status")
    for result in results:
        style = _STATUS_STYLES[result.status]
        table.add_row(result.module_id, f"[{style}]{result.status}[/{style}]")
    state.console.print(table)

    failures = [result for result in results if result.status == "failed"]
    for failure in failures:
        hint = exception_hint(failure.error) if failure.error else None
        emit_error(f"{failure.module_id}: {hint or 'compilation failed'}", exception=failure.error)
    if failures:
        raise typer.Exit(code=1)


__all__ = ["compile_modules"]
