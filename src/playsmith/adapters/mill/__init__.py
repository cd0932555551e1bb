"""Mill-based compiler adapter producing Scala.js preview bundles.

Each preview snippet becomes one Mill module under the generated-modules root::

    demos/autogen/package.mill             # parent descriptor, written once
    demos/autogen/h1a2b3c4d5e6f/package.mill
    demos/autogen/h1a2b3c4d5e6f/src/Main.scala

and compiles to ``out/demos/autogen/h1a2b3c4d5e6f/fullLinkJS.dest/main.js``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping, Sequence
import contextlib
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import signal

from playsmith.core.config import CompilerConfig
from playsmith.core.exceptions import BuildDirectoryError, CompilationError
from playsmith.core.models import CompiledArtifact
from playsmith.core.templates import TemplateEngine, package_prefix_for


MODULE_DESCRIPTOR = "package.mill"
MODULE_SOURCE = Path("src") / "Main.scala"
OUTPUT_FILENAME = "main.js"
_CHUNK_SIZE = 8192
_KILL_GRACE = 5.0

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GeneratedModule:
    """Location of one scaffolded module and its expected output."""

    module_id: str
    module_dir: Path
    source_path: Path
    descriptor_path: Path
    output_path: Path


def _write_if_changed(path: Path, content: str) -> bool:
    try:
        if path.read_text(encoding="utf-8") == content:
            return False
    except FileNotFoundError:
        pass
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


async def _drain(stream: asyncio.StreamReader | None, limit: int) -> bytes:
    """Read ``stream`` to the end, keeping only the last ``limit`` bytes."""
    if stream is None:
        return b""
    buffer = bytearray()
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > limit:
            del buffer[: len(buffer) - limit]
    return bytes(buffer)


def _decode(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


def _kill_process_tree(process: asyncio.subprocess.Process) -> None:
    """Kill the compiler together with any helper processes it spawned."""
    if os.name == "posix":
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(process.pid, signal.SIGKILL)
            return
    with contextlib.suppress(ProcessLookupError):
        process.kill()


class MillCompiler:
    """Scaffold and compile generated Mill modules inside a working directory."""

    def __init__(
        self,
        cwd: str | Path,
        config: CompilerConfig | None = None,
        *,
        engine: TemplateEngine | None = None,
    ) -> None:
        self.cwd = Path(cwd).resolve()
        self.config = config or CompilerConfig()
        self.engine = engine or TemplateEngine()

    @property
    def modules_root(self) -> Path:
        return self.cwd / self.config.modules_root

    @property
    def package_prefix(self) -> str:
        return package_prefix_for(self.config.modules_root)

    def module_dir(self, module_id: str) -> Path:
        return self.modules_root / module_id

    def output_path(self, module_id: str, target: str | None = None) -> Path:
        task = target or self.config.output_target
        return (
            self.cwd
            / self.config.output_root
            / self.config.modules_root
            / module_id
            / f"{task}.dest"
            / OUTPUT_FILENAME
        )

    def source_path(self, module_id: str) -> Path:
        return self.module_dir(module_id) / MODULE_SOURCE

    def module(self, module_id: str) -> GeneratedModule:
        module_dir = self.module_dir(module_id)
        return GeneratedModule(
            module_id=module_id,
            module_dir=module_dir,
            source_path=module_dir / MODULE_SOURCE,
            descriptor_path=module_dir / MODULE_DESCRIPTOR,
            output_path=self.output_path(module_id),
        )

    def ensure_root(self) -> Path:
        """Create the generated-modules root and its parent descriptor."""
        root = self.modules_root
        try:
            root.mkdir(parents=True, exist_ok=True)
            descriptor = root / MODULE_DESCRIPTOR
            if not descriptor.exists():
                content = self.engine.render_partial("root.mill", {"package": self.package_prefix})
                descriptor.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise BuildDirectoryError(f"Unable to prepare generated modules in '{root}': {exc}") from exc
        return root

    def scaffold(self, module_id: str, wrapped_source: str, *, deps: Sequence[str] = ()) -> Path:
        """Write the module descriptor and source, leaving identical files untouched."""
        self.ensure_root()
        module = self.module(module_id)
        descriptor = self.engine.render_partial(
            "module.mill",
            {"package": f"{self.package_prefix}.{module_id}", "deps": list(deps)},
        )
        try:
            changed = _write_if_changed(module.descriptor_path, descriptor)
            changed = _write_if_changed(module.source_path, wrapped_source) or changed
        except OSError as exc:
            raise CompilationError(
                f"Unable to scaffold module '{module_id}': {exc}", module_id=module_id
            ) from exc
        if changed:
            _log.debug("scaffolded preview module %s", module.module_dir)
        return module.module_dir

    def discover(self) -> Iterator[GeneratedModule]:
        """Yield every scaffolded module that carries a source file."""
        root = self.modules_root
        if not root.is_dir():
            return
        for child in sorted(root.iterdir()):
            if not child.is_dir():
                continue
            module = self.module(child.name)
            if module.source_path.is_file():
                yield module

    def executable(self) -> str:
        configured = self.config.executable
        if configured == "mill":
            launcher = self.cwd / "mill"
            if launcher.is_file():
                return str(launcher)
        return configured

    def command(self, module_id: str, target: str | None = None) -> list[str]:
        task = target or self.config.output_target
        return [self.executable(), f"{self.package_prefix}.{module_id}.{task}"]

    def _environment(self) -> Mapping[str, str]:
        env = dict(os.environ)
        env.update(self.config.env)
        return env

    async def compile(self, module_dir: str | Path, target: str | None = None) -> CompiledArtifact:
        """Run the compiler for one module and read its output back."""
        module = self.module(Path(module_dir).name)
        argv = self.command(module.module_id, target)
        output_path = self.output_path(module.module_id, target)
        limit = self.config.max_output
        _log.debug("running %s in %s", " ".join(argv), self.cwd)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(self._environment()),
                start_new_session=os.name == "posix",
            )
        except OSError as exc:
            raise CompilationError(
                f"Unable to launch '{argv[0]}': {exc}", module_id=module.module_id
            ) from exc

        pending = asyncio.ensure_future(
            asyncio.gather(_drain(process.stdout, limit), _drain(process.stderr, limit), process.wait())
        )
        try:
            # Shielded so an aborted page build lets the compiler finish and the
            # result stays reusable by the next run.
            stdout_raw, stderr_raw, returncode = await asyncio.wait_for(
                asyncio.shield(pending), timeout=self.config.timeout
            )
        except asyncio.TimeoutError as exc:
            _kill_process_tree(process)
            try:
                stdout_raw, stderr_raw, returncode = await asyncio.wait_for(pending, timeout=_KILL_GRACE)
            except asyncio.TimeoutError:
                _log.warning("compiler for %s did not exit after being killed", module.module_id)
                stdout_raw, stderr_raw, returncode = b"", b"", process.returncode
            raise CompilationError(
                f"Compilation of '{module.module_id}' timed out after {self.config.timeout}s",
                module_id=module.module_id,
                returncode=returncode,
                stdout=_decode(stdout_raw),
                stderr=_decode(stderr_raw),
                timed_out=True,
            ) from exc

        stdout = _decode(stdout_raw)
        stderr = _decode(stderr_raw)
        if returncode != 0:
            raise CompilationError(
                f"Compilation of '{module.module_id}' failed with status {returncode}",
                module_id=module.module_id,
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
            )
        if not output_path.is_file():
            raise CompilationError(
                f"Compiled output '{output_path}' not found after compilation",
                module_id=module.module_id,
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
            )

        try:
            code = await asyncio.to_thread(output_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CompilationError(
                f"Unable to read compiled output '{output_path}': {exc}",
                module_id=module.module_id,
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
            ) from exc
        return CompiledArtifact(
            source_path=str(module.source_path),
            output_path=str(output_path),
            code=code,
        )


__all__ = [
    "GeneratedModule",
    "MODULE_DESCRIPTOR",
    "MODULE_SOURCE",
    "MillCompiler",
    "OUTPUT_FILENAME",
]
