"""CLI emitter that renders pipeline diagnostics and summarises failed builds."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from playsmith.core.diagnostics import DiagnosticEmitter, format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class CliEmitter(DiagnosticEmitter):
    """Route playground diagnostics to the Rich consoles held by the CLI state."""

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        self._state = state or get_cli_state()
        if debug_enabled is None:
            debug_enabled = self._state.show_tracebacks
        self.debug_enabled = bool(debug_enabled)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        data = dict(payload)
        self._state.record_event(name, data)
        message = format_event_message(name, data)
        if message:
            render_message("info", message)

    def summarize(self) -> int:
        """Report previews that failed and sources that could not be read.

        Consumes the recorded events, so a second call reports nothing.
        Returns the number of affected playground files.
        """
        failed = sorted(
            {str(entry.get("module") or "<unknown>") for entry in self._state.consume_events("preview_failed")}
        )
        missing = sorted(
            {str(entry.get("path") or "<unknown>") for entry in self._state.consume_events("source_missing")}
        )
        if failed:
            emit_warning(f"{_plural(len(failed), 'preview')} failed to compile: {', '.join(failed)}")
        if missing:
            emit_warning(f"{_plural(len(missing), 'playground source')} could not be read: {', '.join(missing)}")
        return len(failed) + len(missing)


__all__ = ["CliEmitter"]
