"""Custom exception hierarchy for the playground build pipeline."""

from __future__ import annotations


class PlaygroundError(RuntimeError):
    """Base exception for playground build failures."""


class MetaParseError(PlaygroundError):
    """Raised when a code fence meta token cannot be interpreted."""


class SourceFileMissingError(PlaygroundError, FileNotFoundError):
    """Raised when a ``file=`` reference points at a missing path."""

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(message or f"Playground source '{path}' does not exist.")
        self.path = path


class CompilationError(PlaygroundError):
    """Raised when the external compiler fails or produces no artifact."""

    def __init__(
        self,
        message: str,
        *,
        module_id: str | None = None,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.module_id = module_id
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.timed_out = timed_out

    @property
    def output(self) -> str:
        """Return the captured compiler output, stderr first."""
        parts = [segment.strip() for segment in (self.stderr, self.stdout) if segment.strip()]
        return "\n".join(parts)


class CacheIOError(PlaygroundError):
    """Raised when the compile cache manifest cannot be read or written."""


class BuildDirectoryError(PlaygroundError):
    """Raised when the generated-modules root cannot be prepared."""


class TranspileError(PlaygroundError):
    """Raised when a component-dialect script cannot be transpiled."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "BuildDirectoryError",
    "CacheIOError",
    "CompilationError",
    "MetaParseError",
    "PlaygroundError",
    "SourceFileMissingError",
    "TranspileError",
    "exception_hint",
    "exception_messages",
]
