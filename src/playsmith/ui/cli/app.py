"""Typer application wiring for the playsmith CLI."""

from __future__ import annotations

import typer

from ._options import DebugOption, VerboseOption
from .commands.cache import app as cache_app
from .commands.compile import compile_modules
from .commands.preview import preview
from .commands.render import render
from .state import debug_enabled, emit_error, get_cli_state, set_cli_state


app = typer.Typer(
    help="Build documentation playgrounds into self-contained previews.",
    context_settings={"help_option_names": ["--help", "-h"]},
    no_args_is_help=True,
)


@app.callback()
def configure(ctx: typer.Context, verbose: VerboseOption = 0, debug: DebugOption = False) -> None:
    """Build documentation playgrounds into self-contained previews."""
    set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)


app.command()(render)
app.command()(preview)
app.command("compile")(compile_modules)
app.add_typer(cache_app, name="cache")


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - defensive catch-all
        state = get_cli_state()
        if state.show_tracebacks:
            from rich.traceback import Traceback

            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
