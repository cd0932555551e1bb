"""Transpilers turning component-dialect sources into browser scripts."""

from __future__ import annotations

import logging
import shutil
import subprocess

from playsmith.core.config import PlaysmithConfig
from playsmith.core.document import BrowserTranspiler, ScriptPayload, Transpiler
from playsmith.core.exceptions import TranspileError


ESBUILD_BINARY = "esbuild"
ESBUILD_ARGS = ("--loader=tsx", "--jsx=transform", "--format=esm", "--log-level=error")

_log = logging.getLogger(__name__)


class EsbuildTranspiler:
    """Compile JSX/TSX ahead of time with the esbuild command line."""

    def __init__(self, executable: str = ESBUILD_BINARY, *, timeout: float | None = 60.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def command(self) -> list[str]:
        return [self.executable, *ESBUILD_ARGS]

    def transpile(self, source: str) -> ScriptPayload:
        argv = self.command()
        _log.debug("Running %s", " ".join(argv))
        try:
            process = subprocess.run(
                argv,
                input=source,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise TranspileError(f"Transpiler '{self.executable}' is not available.") from exc
        except subprocess.TimeoutExpired as exc:
            raise TranspileError(f"Transpiler '{self.executable}' timed out after {self.timeout}s.") from exc
        except OSError as exc:
            raise TranspileError(f"Unable to run transpiler '{self.executable}': {exc}") from exc

        if process.returncode != 0:
            detail = (process.stderr or process.stdout or "").strip()
            message = f"Transpiler '{self.executable}' exited with status {process.returncode}"
            raise TranspileError(f"{message}: {detail}" if detail else f"{message}.")
        return ScriptPayload(code=process.stdout)


def resolve_transpiler(config: PlaysmithConfig | None = None) -> Transpiler:
    """Return the transpiler selected by ``config.transpiler``."""
    config = config or PlaysmithConfig()
    strategy = config.transpiler
    if strategy == "esbuild":
        return EsbuildTranspiler()
    if strategy == "auto":
        resolved = shutil.which(ESBUILD_BINARY)
        if resolved is not None:
            return EsbuildTranspiler(resolved)
    return BrowserTranspiler(config.babel_url)


__all__ = ["ESBUILD_ARGS", "EsbuildTranspiler", "resolve_transpiler"]
