"""High-level entry points wiring the playground pipeline together.

The core modules never import an external tool adapter; this module is where
the Mill compiler and the transpiler selection are bound to them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from pathlib import Path

import markdown

from .adapters.markdown import PlaygroundExtension, PlaygroundSpec, scan_playgrounds
from .adapters.mill import MillCompiler
from .adapters.transpilers import resolve_transpiler
from .core.cache import CompileCache
from .core.compilation import PendingModuleResult, PreviewCompiler
from .core.config import PlaysmithConfig
from .core.diagnostics import DiagnosticEmitter, NullEmitter
from .core.dialects import Dialect
from .core.document import DocumentAssembler
from .core.fileset import build_file_set
from .core.models import CodeBlock, FileSet
from .core.templates import TemplateEngine, package_prefix_for


PAGE_EXTENSIONS = ["fenced_code", "tables", "attr_list"]


def create_compiler(
    cwd: str | Path,
    config: PlaysmithConfig | None = None,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> PreviewCompiler:
    """Return a :class:`PreviewCompiler` backed by Mill and the manifest cache."""
    config = config or PlaysmithConfig()
    emitter = emitter or NullEmitter()
    engine = TemplateEngine(
        default_template=config.default_template,
        package_prefix=package_prefix_for(config.compiler.modules_root),
    )
    adapter = MillCompiler(cwd, config.compiler, engine=engine)
    cache = CompileCache(cwd, config=config, emitter=emitter)
    return PreviewCompiler(adapter, cache, engine=engine, emitter=emitter)


def create_assembler(config: PlaysmithConfig | None = None) -> DocumentAssembler:
    config = config or PlaysmithConfig()
    return DocumentAssembler(config=config, transpiler=resolve_transpiler(config))


async def build_playground(
    blocks: Iterable[CodeBlock],
    cwd: str | Path,
    preset: Dialect | str = Dialect.PLAIN,
    *,
    config: PlaysmithConfig | None = None,
    compiler: PreviewCompiler | None = None,
    assembler: DocumentAssembler | None = None,
    emitter: DiagnosticEmitter | None = None,
    extra_head: Sequence[str] = (),
) -> tuple[FileSet, str]:
    """Build the file set of one playground and its preview document."""
    config = config or PlaysmithConfig()
    emitter = emitter or NullEmitter()
    dialect = Dialect.parse(preset)
    if compiler is None:
        compiler = create_compiler(cwd, config, emitter=emitter)
    files = await build_file_set(blocks, cwd, dialect, compiler=compiler, emitter=emitter)
    assembler = assembler or create_assembler(config)
    document = await asyncio.to_thread(assembler.assemble, files, dialect, extra_head=extra_head)
    return files, document


def render_playground(
    blocks: Iterable[CodeBlock],
    cwd: str | Path,
    preset: Dialect | str = Dialect.PLAIN,
    **kwargs: object,
) -> tuple[FileSet, str]:
    """Synchronous wrapper around :func:`build_playground`."""
    return asyncio.run(build_playground(blocks, cwd, preset, **kwargs))  # type: ignore[arg-type]


async def render_page(
    text: str,
    cwd: str | Path,
    *,
    config: PlaysmithConfig | None = None,
    compiler: PreviewCompiler | None = None,
    emitter: DiagnosticEmitter | None = None,
    extensions: Sequence[object] | None = None,
) -> str:
    """Render a Markdown page, replacing playgrounds with live previews.

    Every playground on the page is built concurrently and shares one
    compiler, so identical snippets compile once.
    """
    config = config or PlaysmithConfig()
    emitter = emitter or NullEmitter()
    compiler = compiler or create_compiler(cwd, config, emitter=emitter)
    assembler = create_assembler(config)
    specs: list[PlaygroundSpec] = scan_playgrounds(text.splitlines())

    built = await asyncio.gather(
        *(
            build_playground(
                spec.blocks,
                cwd,
                spec.preset,
                config=config,
                compiler=compiler,
                assembler=assembler,
                emitter=emitter,
            )
            for spec in specs
        )
    )
    rendered = {spec.index: payload for spec, payload in zip(specs, built)}
    page_extensions = list(PAGE_EXTENSIONS if extensions is None else extensions)
    page_extensions.append(PlaygroundExtension(rendered=rendered))
    return await asyncio.to_thread(markdown.markdown, text, extensions=page_extensions)


async def compile_pending(
    cwd: str | Path,
    config: PlaysmithConfig | None = None,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> list[PendingModuleResult]:
    """Compile every generated module whose cached output is stale."""
    compiler = create_compiler(cwd, config, emitter=emitter)
    return await compiler.compile_pending()


__all__ = [
    "build_playground",
    "compile_pending",
    "create_assembler",
    "create_compiler",
    "render_page",
    "render_playground",
]
