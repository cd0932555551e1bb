"""Assemble the virtual file set of one playground from its code blocks.

Blocks are processed concurrently, each producing a list of pending files.
The results are merged in document order afterwards, which is where names
are generated, later paths overwrite earlier ones, and the default focus
(``active``) is resolved.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import logging
from pathlib import Path, PurePosixPath
import re

from .compilation import PreviewCompiler
from .diagnostics import DiagnosticEmitter, NullEmitter
from .dialects import Dialect, requires_compilation
from .exceptions import CompilationError, SourceFileMissingError, exception_hint
from .meta import parse_meta
from .models import CodeBlock, FileMeta, FileSet, VirtualFile
from .templates import default_imports, split_list_option


DEFAULT_STEM = "file"
ARTIFACT_STEM = "index"
ERROR_STEM = "error"
STYLE_PATHS = ("/index.css", "/styles.css")
MAX_ERROR_LINES = 40

DEFAULT_STYLESHEET = """\
html, body {
  width: 100%;
  height: 100%;
  margin: 0;
}

body {
  display: flex;
  justify-content: center;
  align-items: center;
  font-family: system-ui, -apple-system, sans-serif;
}

#root {
  padding: 2rem;
}
"""

_EXTENSIONS = {
    "": "txt",
    "bash": "sh",
    "javascript": "js",
    "js": "js",
    "markdown": "md",
    "python": "py",
    "shell": "sh",
    "text": "txt",
    "typescript": "ts",
    "yaml": "yml",
}
_SAFE_EXTENSION = re.compile(r"\w+")

_log = logging.getLogger(__name__)


def extension_for(language: str) -> str:
    """Return the file extension used for generated names of ``language``."""
    token = language.strip().lower()
    extension = _EXTENSIONS.get(token, token)
    return extension if _SAFE_EXTENSION.fullmatch(extension) else "txt"


def virtual_path(name: str, directory: str | None = None) -> str:
    """Return a ``/``-prefixed virtual path for ``name`` under ``directory``."""
    parts = [segment for segment in (directory or "").split("/") if segment not in {"", "."}]
    parts.extend(segment for segment in name.split("/") if segment not in {"", "."})
    return "/" + "/".join(parts)


@dataclass(slots=True)
class _PendingFile:
    code: str
    language: str
    hidden: bool = False
    active: bool | None = None
    name: str | None = None
    directory: str | None = None
    stem: str = DEFAULT_STEM
    extension: str = "txt"

    @property
    def explicit_path(self) -> str | None:
        return virtual_path(self.name, self.directory) if self.name else None


def format_error_artifact(exc: BaseException) -> str:
    """Render a compilation failure as a commented script."""
    hint = exception_hint(exc) or type(exc).__name__
    lines = [f"// Compilation failed: {hint}"]
    output = exc.output if isinstance(exc, CompilationError) else ""
    if output:
        tail = output.splitlines()[-MAX_ERROR_LINES:]
        lines.append("//")
        lines.extend(f"// {line}".rstrip() for line in tail)
    return "\n".join(lines) + "\n"


class FileSetBuilder:
    """Build one playground's :class:`FileSet` from its code blocks."""

    def __init__(
        self,
        cwd: str | Path,
        *,
        dialect: Dialect | str = Dialect.PLAIN,
        compiler: PreviewCompiler | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.cwd = Path(cwd)
        self.dialect = Dialect.parse(dialect)
        self.compiler = compiler
        self.emitter = emitter or NullEmitter()

    async def build(self, blocks: Iterable[CodeBlock]) -> FileSet:
        """Process every block and merge the results in document order."""
        outcomes = await asyncio.gather(*(self._process(block) for block in blocks))
        pending = [entry for outcome in outcomes for entry in outcome]
        if self._needs_default_stylesheet(pending):
            pending.append(
                _PendingFile(
                    code=DEFAULT_STYLESHEET,
                    language="css",
                    active=False,
                    name=STYLE_PATHS[1].lstrip("/"),
                    extension="css",
                )
            )
        return self._merge(pending)

    async def _read_source(self, relative: str) -> str:
        path = self.cwd / relative
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise SourceFileMissingError(str(path)) from exc
        except OSError as exc:
            raise SourceFileMissingError(str(path), f"Unable to read playground source '{path}': {exc}") from exc
        except UnicodeDecodeError as exc:
            raise SourceFileMissingError(
                str(path), f"Playground source '{path}' is not valid UTF-8: {exc.reason}"
            ) from exc

    async def _process(self, block: CodeBlock) -> list[_PendingFile]:
        meta = parse_meta(block.language, block.meta_text)
        code = block.source_text
        if meta.file:
            if not meta.name:
                meta.name = PurePosixPath(meta.file).name
            try:
                code = await self._read_source(meta.file)
            except SourceFileMissingError as exc:
                self.emitter.warning(str(exc))
                self.emitter.event("source_missing", {"path": exc.path})
                code = ""

        display = _PendingFile(
            code=code,
            language=meta.language,
            hidden=meta.hidden,
            active=meta.active,
            name=meta.name,
            directory=meta.dir,
            extension=extension_for(meta.language),
        )
        if not requires_compilation(meta.language, meta.preview):
            return [display]
        return [display, await self._compile(meta, code)]

    async def _compile(self, meta: FileMeta, code: str) -> _PendingFile:
        try:
            if self.compiler is None:
                raise CompilationError("No compiler is configured for preview snippets.")
            result = await self.compiler.compile_source(
                code,
                template=meta.template,
                imports=default_imports(split_list_option(meta.get("imports"))),
                deps=split_list_option(meta.get("deps")),
            )
        except CompilationError as exc:
            self.emitter.error(f"Failed to compile preview: {exception_hint(exc)}", exc)
            return _PendingFile(
                code=format_error_artifact(exc),
                language="js",
                stem=ERROR_STEM,
                extension="js",
            )
        return _PendingFile(
            code=result.artifact.code,
            language="js",
            hidden=True,
            active=False,
            stem=ARTIFACT_STEM,
            extension="js",
        )

    def _needs_default_stylesheet(self, pending: Sequence[_PendingFile]) -> bool:
        if not self.dialect.compiles or self.dialect.uses_tailwind:
            return False
        if not any(entry.stem == ARTIFACT_STEM and entry.name is None for entry in pending):
            return False
        return not any(entry.explicit_path in STYLE_PATHS for entry in pending)

    def _merge(self, pending: Sequence[_PendingFile]) -> FileSet:
        taken = {path for entry in pending if (path := entry.explicit_path) is not None}
        counters: dict[tuple[str | None, str, str], int] = {}
        merged: dict[str, _PendingFile] = {}

        for entry in pending:
            path = entry.explicit_path
            if path is None:
                key = (entry.directory, entry.stem, entry.extension)
                index = counters.get(key, 0)
                while True:
                    index += 1
                    suffix = "" if index == 1 else str(index)
                    path = virtual_path(f"{entry.stem}{suffix}.{entry.extension}", entry.directory)
                    if path not in taken:
                        break
                counters[key] = index
                taken.add(path)
            elif path in merged:
                _log.debug("block for %s replaces an earlier one", path)
            merged[path] = entry

        claimed = any(entry.active is True for entry in merged.values())
        files: dict[str, VirtualFile] = {}
        for path, entry in merged.items():
            active = entry.active
            if active is None:
                active = not claimed
                claimed = claimed or active
            files[path] = VirtualFile(
                path=path,
                code=entry.code,
                hidden=entry.hidden,
                active=active,
                language=entry.language,
            )
        return FileSet(files=files)


async def build_file_set(
    blocks: Iterable[CodeBlock],
    cwd: str | Path,
    dialect: Dialect | str = Dialect.PLAIN,
    *,
    compiler: PreviewCompiler | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> FileSet:
    """Build the file set for one playground instance."""
    builder = FileSetBuilder(cwd, dialect=dialect, compiler=compiler, emitter=emitter)
    return await builder.build(blocks)


__all__ = [
    "DEFAULT_STYLESHEET",
    "FileSetBuilder",
    "build_file_set",
    "extension_for",
    "format_error_artifact",
    "virtual_path",
]
