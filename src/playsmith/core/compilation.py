"""Compile path for preview snippets: template, cache, external compiler.

Identical requests issued concurrently share a single in-flight compilation:
late joiners await the same future instead of racing the compiler on the same
output path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Literal, Protocol, runtime_checkable

from .cache import CompileCache, compute_hash
from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import CompilationError, exception_hint
from .models import CompiledArtifact
from .templates import TemplateEngine, TemplateParams


MODULE_PREFIX = "h"
MODULE_DIGEST_LENGTH = 12

_log = logging.getLogger(__name__)


@runtime_checkable
class CompilerAdapter(Protocol):
    """Replaceable boundary around the external compiler."""

    def scaffold(self, module_id: str, wrapped_source: str, *, deps: Sequence[str] = ()) -> Path: ...

    async def compile(self, module_dir: str | Path, target: str | None = None) -> CompiledArtifact: ...

    def output_path(self, module_id: str, target: str | None = None) -> Path: ...

    def source_path(self, module_id: str) -> Path: ...


@dataclass(frozen=True, slots=True)
class PreparedPreview:
    """A snippet expanded into its compile unit, ready for cache lookup."""

    user_code: str
    template: str
    params: TemplateParams
    wrapped_source: str
    hash: str

    @property
    def module_id(self) -> str:
        return self.params.module_id


@dataclass(frozen=True, slots=True)
class PreviewResult:
    """Compiled script for one snippet."""

    prepared: PreparedPreview
    artifact: CompiledArtifact
    cached: bool


@dataclass(slots=True)
class PendingModuleResult:
    """Outcome of one module in a batch compilation."""

    module_id: str
    status: Literal["fresh", "compiled", "failed"]
    error: CompilationError | None = None


def module_id_for(code: str, template: str, params: dict[str, Any]) -> str:
    """Return the deterministic module name for a snippet."""
    digest = compute_hash(code, template, params)
    return f"{MODULE_PREFIX}{digest[:MODULE_DIGEST_LENGTH]}"


class PreviewCompiler:
    """Drive snippets through the template engine, cache and compiler."""

    def __init__(
        self,
        adapter: CompilerAdapter,
        cache: CompileCache,
        *,
        engine: TemplateEngine | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.adapter = adapter
        self.cache = cache
        self.engine = engine or TemplateEngine()
        self.emitter = emitter or NullEmitter()
        self._inflight: dict[str, asyncio.Future[PreviewResult]] = {}

    def prepare(
        self,
        code: str,
        *,
        template: str | None = None,
        imports: Iterable[str] = (),
        deps: Iterable[str] = (),
    ) -> PreparedPreview:
        """Expand ``code`` through its template and compute the cache key."""
        name = self.engine.resolve(code, template)
        imports = tuple(imports)
        deps = tuple(deps)
        module_id = module_id_for(code, name, {"imports": list(imports), "deps": list(deps)})
        params = TemplateParams(
            module_id=module_id, imports=imports, deps=deps, prefix=self.engine.package_prefix
        )
        wrapped = self.engine.apply(code, name, params)
        return PreparedPreview(
            user_code=code,
            template=name,
            params=params,
            wrapped_source=wrapped,
            hash=compute_hash(wrapped, name, params.identity()),
        )

    async def compile(self, prepared: PreparedPreview) -> PreviewResult:
        """Return the compiled script, reusing the cache or an in-flight run."""
        key = prepared.hash
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._compile(prepared))
            self._inflight[key] = future

            def _release(done: asyncio.Future[PreviewResult]) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            future.add_done_callback(_release)
        return await asyncio.shield(future)

    async def compile_source(
        self,
        code: str,
        *,
        template: str | None = None,
        imports: Iterable[str] = (),
        deps: Iterable[str] = (),
    ) -> PreviewResult:
        """Convenience wrapper combining :meth:`prepare` and :meth:`compile`."""
        prepared = self.prepare(code, template=template, imports=imports, deps=deps)
        return await self.compile(prepared)

    async def _read_cached(self, prepared: PreparedPreview, output_path: Path) -> PreviewResult | None:
        if self.cache.should_recompile(prepared.hash, prepared.wrapped_source, output_path):
            return None
        try:
            code = await asyncio.to_thread(output_path.read_text, encoding="utf-8")
        except OSError:
            _log.debug("cached artifact %s vanished, recompiling", output_path)
            return None
        except UnicodeDecodeError:
            _log.debug("cached artifact %s is not valid UTF-8, recompiling", output_path)
            return None
        self.emitter.event("preview_cached", {"hash": prepared.hash, "module": prepared.module_id})
        artifact = CompiledArtifact(
            source_path=str(self.adapter.source_path(prepared.module_id)),
            output_path=str(output_path),
            code=code,
        )
        return PreviewResult(prepared=prepared, artifact=artifact, cached=True)

    async def _compile(self, prepared: PreparedPreview) -> PreviewResult:
        output_path = self.adapter.output_path(prepared.module_id)
        cached = await self._read_cached(prepared, output_path)
        if cached is not None:
            return cached

        self.emitter.event(
            "preview_compile",
            {"module": prepared.module_id, "template": prepared.template, "hash": prepared.hash},
        )
        module_dir = await asyncio.to_thread(
            self.adapter.scaffold,
            prepared.module_id,
            prepared.wrapped_source,
            deps=prepared.params.deps,
        )
        try:
            artifact = await self.adapter.compile(module_dir)
        except CompilationError as exc:
            self.emitter.event(
                "preview_failed",
                {"module": prepared.module_id, "reason": exception_hint(exc) or "compilation failed"},
            )
            raise
        await asyncio.to_thread(
            self.cache.record, prepared.hash, prepared.wrapped_source, artifact.output_path
        )
        return PreviewResult(prepared=prepared, artifact=artifact, cached=False)

    async def compile_pending(self) -> list[PendingModuleResult]:
        """Compile every scaffolded module whose output is missing or stale."""
        discover = getattr(self.adapter, "discover", None)
        if discover is None:
            raise TypeError(f"{type(self.adapter).__name__} cannot enumerate generated modules")

        entries_by_output = {entry.compiled_path: entry for entry in self.cache.manifest.entries.values()}
        jobs = []
        for module in discover():
            source = module.source_path.read_text(encoding="utf-8")
            output_path = self.adapter.output_path(module.module_id)
            entry = entries_by_output.get(str(output_path))
            key = entry.hash if entry is not None else compute_hash(source, "", {"module": module.module_id})
            jobs.append((module, source, key, output_path))

        async def _run(module: Any, source: str, key: str, output_path: Path) -> PendingModuleResult:
            if not self.cache.should_recompile(key, source, output_path):
                return PendingModuleResult(module_id=module.module_id, status="fresh")
            self.emitter.event("preview_compile", {"module": module.module_id})
            try:
                artifact = await self.adapter.compile(module.module_dir)
            except CompilationError as exc:
                self.emitter.event(
                    "preview_failed",
                    {"module": module.module_id, "reason": exception_hint(exc) or "compilation failed"},
                )
                return PendingModuleResult(module_id=module.module_id, status="failed", error=exc)
            await asyncio.to_thread(self.cache.record, key, source, artifact.output_path)
            return PendingModuleResult(module_id=module.module_id, status="compiled")

        return list(await asyncio.gather(*(_run(*job) for job in jobs)))


__all__ = [
    "CompilerAdapter",
    "MODULE_DIGEST_LENGTH",
    "MODULE_PREFIX",
    "PendingModuleResult",
    "PreparedPreview",
    "PreviewCompiler",
    "PreviewResult",
    "module_id_for",
]
