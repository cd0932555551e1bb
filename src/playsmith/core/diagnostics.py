"""Diagnostic abstractions shared across the playground pipeline."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None and self.debug_enabled:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


def _short_hash(value: Any) -> str:
    text = str(value or "")
    return f"{text[:10]}..." if len(text) > 10 else text or "<unknown>"


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "preview_compile":
        module = data.get("module") or "<unknown>"
        template = data.get("template")
        suffix = f" (template={template})" if template else ""
        return f"Compiling preview {module}{suffix}"

    if name == "preview_cached":
        return f"Reusing cached preview {_short_hash(data.get('hash'))}"

    if name == "preview_failed":
        module = data.get("module") or "<unknown>"
        reason = data.get("reason") or "compilation failed"
        return f"Preview {module} failed: {reason}"

    if name == "source_missing":
        path = data.get("path") or "<unknown>"
        return f"Playground source not found: {path}"

    if name == "cache_reset":
        path = data.get("path") or "<unknown>"
        reason = data.get("reason")
        suffix = f" ({reason})" if reason else ""
        return f"Reset compile cache manifest {path}{suffix}"

    return None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "format_event_message",
]
