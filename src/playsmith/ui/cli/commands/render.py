"""Render a Markdown page with its playgrounds into HTML."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from playsmith.api import render_page

from .._options import ConfigOption, CwdOption, OutputPathOption
from ..diagnostics import CliEmitter
from ..state import get_cli_state
from . import load_cli_config, resolve_workdir, write_output


def render(
    page: Annotated[
        Path,
        typer.Argument(
            help="Markdown page containing playgrounds.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    output: OutputPathOption = None,
    cwd: CwdOption = None,
    config: ConfigOption = None,
) -> None:
    """Render PAGE to HTML, replacing every playground with a live preview."""
    workdir = resolve_workdir(cwd)
    settings = load_cli_config(config, workdir)
    emitter = CliEmitter(get_cli_state())
    text = page.read_text(encoding="utf-8")
    html = asyncio.run(render_page(text, workdir, config=settings, emitter=emitter))
    emitter.summarize()
    write_output(html, output)


__all__ = ["render"]
