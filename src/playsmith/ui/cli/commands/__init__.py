"""Command implementations for the ``playsmith`` CLI."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError
import typer
import yaml

from playsmith.core.config import PlaysmithConfig, load_config

from ..state import emit_error


def resolve_workdir(cwd: Path | None) -> Path:
    return (cwd or Path.cwd()).resolve()


def load_cli_config(path: Path | None, cwd: Path) -> PlaysmithConfig:
    """Load configuration, turning invalid files into a CLI error."""
    try:
        return load_config(path, cwd=cwd)
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        emit_error(f"Invalid configuration: {exc}", exception=exc)
        raise typer.Exit(code=1) from exc


def write_output(content: str, output: Path | None) -> None:
    """Write ``content`` to ``output`` or stdout."""
    if output is None:
        typer.echo(content, nl=not content.endswith("\n"))
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")


__all__ = ["load_cli_config", "resolve_workdir", "write_output"]
