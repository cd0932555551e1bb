from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from playsmith.core.cache import CompileCache
from playsmith.core.compilation import PreviewCompiler
from playsmith.core.exceptions import CompilationError
from playsmith.core.models import CompiledArtifact


class RecordingEmitter:
    """Emitter capturing diagnostics for assertions."""

    def __init__(self) -> None:
        self.debug_enabled = False
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@dataclass
class _Module:
    module_id: str
    module_dir: Path
    source_path: Path


class FakeAdapter:
    """In-memory stand-in for the external compiler."""

    def __init__(self, root: Path, *, failing: set[str] | None = None, delay: float = 0.0) -> None:
        self.root = root
        self.failing = failing or set()
        self.delay = delay
        self.scaffolded: list[tuple[str, str, tuple[str, ...]]] = []
        self.compiled: list[str] = []

    def module_dir(self, module_id: str) -> Path:
        return self.root / "modules" / module_id

    def source_path(self, module_id: str) -> Path:
        return self.module_dir(module_id) / "Main.scala"

    def output_path(self, module_id: str, target: str | None = None) -> Path:
        return self.root / "out" / module_id / "main.js"

    def scaffold(self, module_id: str, wrapped_source: str, *, deps=()) -> Path:
        path = self.source_path(module_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(wrapped_source, encoding="utf-8")
        self.scaffolded.append((module_id, wrapped_source, tuple(deps)))
        return path.parent

    def discover(self):
        root = self.root / "modules"
        if not root.is_dir():
            return
        for child in sorted(root.iterdir()):
            yield _Module(child.name, child, child / "Main.scala")

    async def compile(self, module_dir, target=None) -> CompiledArtifact:
        module_id = Path(module_dir).name
        self.compiled.append(module_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        source = self.source_path(module_id).read_text(encoding="utf-8")
        if any(marker in source for marker in self.failing):
            raise CompilationError(
                f"Compilation of '{module_id}' failed with status 1",
                module_id=module_id,
                returncode=1,
                stderr="[error] Main.scala:5: Not found: value undefinedThing",
            )
        output = self.output_path(module_id)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(f"console.log('{module_id}');\n", encoding="utf-8")
        return CompiledArtifact(
            source_path=str(self.source_path(module_id)),
            output_path=str(output),
            code=output.read_text(encoding="utf-8"),
        )


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def adapter(tmp_path: Path) -> FakeAdapter:
    return FakeAdapter(tmp_path / "build")


@pytest.fixture
def compiler(tmp_path: Path, adapter: FakeAdapter, emitter: RecordingEmitter) -> PreviewCompiler:
    cache = CompileCache(tmp_path, emitter=emitter)
    return PreviewCompiler(adapter, cache, emitter=emitter)


@pytest.fixture
def make_compiler(tmp_path: Path, emitter: RecordingEmitter):
    """Return a factory building compilers over a fresh fake adapter."""

    def _factory(**options: Any) -> tuple[PreviewCompiler, FakeAdapter]:
        fake = FakeAdapter(tmp_path / "build", **options)
        cache = CompileCache(tmp_path, emitter=emitter)
        return PreviewCompiler(fake, cache, emitter=emitter), fake

    return _factory
