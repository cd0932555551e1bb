"""Assemble a single preview document from the fences of a Markdown file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from playsmith.adapters.markdown import collect_fenced_blocks
from playsmith.api import build_playground
from playsmith.core.dialects import Dialect

from .._options import OUTPUT_PANEL, ConfigOption, CwdOption, OutputPathOption
from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state
from . import load_cli_config, resolve_workdir, write_output


def preview(
    source: Annotated[
        Path,
        typer.Argument(
            help="Markdown file whose fenced blocks form one playground.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    preset: Annotated[
        str,
        typer.Option(
            "--preset",
            "-p",
            help="Playground dialect: plain, tailwind, react, scalajs or scalajs-tailwind.",
        ),
    ] = Dialect.PLAIN.value,
    output: OutputPathOption = None,
    files_json: Annotated[
        Path | None,
        typer.Option(
            "--files-json",
            help="Also write the virtual file set as JSON.",
            dir_okay=False,
            resolve_path=True,
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = None,
    cwd: CwdOption = None,
    config: ConfigOption = None,
) -> None:
    """Build the preview document for the fenced blocks of SOURCE."""
    try:
        dialect = Dialect.parse(preset)
    except ValueError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=2) from exc

    workdir = resolve_workdir(cwd)
    settings = load_cli_config(config, workdir)
    blocks = collect_fenced_blocks(source.read_text(encoding="utf-8").splitlines())
    emitter = CliEmitter(get_cli_state())
    files, document = asyncio.run(
        build_playground(blocks, workdir, dialect, config=settings, emitter=emitter)
    )
    emitter.summarize()
    if files_json is not None:
        write_output(files.to_json(indent=2) + "\n", files_json)
    write_output(document, output)


__all__ = ["preview"]
