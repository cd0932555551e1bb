"""Assemble the self-contained HTML document loaded into the preview frame.

The output only depends on the file set, the dialect and the assembler
settings: no timestamps or random identifiers are emitted, so identical input
always yields byte-identical documents.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import json
import logging
import re
from typing import Any, Protocol, runtime_checkable

from jinja2 import Environment, FileSystemLoader, Template

from .config import PlaysmithConfig
from .dialects import Dialect
from .exceptions import TranspileError, exception_hint
from .models import FileSet, VirtualFile
from .templates import PARTIALS_DIR


MARKUP_PATHS = ("/index.html",)
STYLE_PATHS = ("/index.css", "/styles.css")
SCRIPT_PATHS = ("/index.js",)
COMPONENT_SCRIPT_PATHS = ("/index.js", "/index.jsx", "/index.tsx")
DEFAULT_MOUNT = '<div id="root"></div>'

_ARTIFACT_PATH = re.compile(r"/index(\d*)\.js")
_ERROR_PATH = re.compile(r"/error(\d*)\.js")
_ERROR_PREFIX = "// "

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScriptPayload:
    """Script body plus the tag attributes and head entries it needs."""

    code: str
    attributes: dict[str, str] = field(default_factory=lambda: {"type": "module"})
    head: tuple[str, ...] = ()


@runtime_checkable
class Transpiler(Protocol):
    """Turn component-dialect source (JSX/TSX) into a browser script."""

    def transpile(self, source: str) -> ScriptPayload: ...


class BrowserTranspiler:
    """Defer JSX compilation to Babel standalone running inside the preview."""

    def __init__(self, babel_url: str = PlaysmithConfig().babel_url) -> None:
        self.babel_url = babel_url

    def transpile(self, source: str) -> ScriptPayload:
        return ScriptPayload(
            code=source,
            attributes={"type": "text/babel", "data-type": "module", "data-presets": "react"},
            head=(f'<script src="{self.babel_url}"></script>',),
        )


def escape_script(code: str) -> str:
    """Prevent embedded code from closing its ``<script>`` element early."""
    return re.sub(r"</(script)", r"<\\/\1", code, flags=re.IGNORECASE)


def escape_style(css: str) -> str:
    return re.sub(r"</(style)", r"<\\/\1", css, flags=re.IGNORECASE)


def _natural_index(match: re.Match[str]) -> int:
    digits = match.group(1)
    return int(digits) if digits else 1


def _coerce_file_set(files: FileSet | Mapping[str, Any]) -> FileSet:
    if isinstance(files, FileSet):
        return files
    if all(isinstance(value, VirtualFile) for value in files.values()):
        return FileSet(files=dict(files))
    return FileSet.from_dict(files)


def _first_code(files: FileSet, paths: Sequence[str]) -> str | None:
    for path in paths:
        code = files.code(path)
        if code is not None:
            return code
    return None


def error_text(code: str) -> str:
    """Strip the comment prefixes of an error artifact for display."""
    lines = []
    for line in code.splitlines():
        if line.startswith(_ERROR_PREFIX):
            lines.append(line[len(_ERROR_PREFIX) :])
        elif line.startswith("//"):
            lines.append(line[2:])
        else:
            lines.append(line)
    return "\n".join(lines).strip()


class DocumentAssembler:
    """Render a file set into one preview document per dialect."""

    def __init__(
        self,
        *,
        config: PlaysmithConfig | None = None,
        transpiler: Transpiler | None = None,
    ) -> None:
        self.config = config or PlaysmithConfig()
        self.transpiler = transpiler or BrowserTranspiler(self.config.babel_url)
        env = Environment(
            loader=FileSystemLoader(PARTIALS_DIR),
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._template: Template = env.get_template("preview.html")

    def _markup(self, files: FileSet, dialect: Dialect) -> str:
        html = _first_code(files, MARKUP_PATHS)
        if dialect is Dialect.PLAIN:
            return html or DEFAULT_MOUNT
        html = html or ""
        if 'id="root"' in html or "id='root'" in html:
            return html
        return f"{html}{DEFAULT_MOUNT}"

    def _head(self, dialect: Dialect) -> list[str]:
        head: list[str] = []
        if dialect.uses_tailwind:
            head.append(f'<script src="{self.config.tailwind_url}"></script>')
        if dialect.transpiles and self.config.import_map:
            table = json.dumps({"imports": self.config.import_map}, indent=2)
            head.append(f'<script type="importmap">{escape_script(table)}</script>')
        return head

    def _scripts(self, files: FileSet, dialect: Dialect) -> tuple[list[ScriptPayload], list[str]]:
        errors: list[str] = []
        if dialect.compiles:
            artifacts = sorted(
                (match for path in files if (match := _ARTIFACT_PATH.fullmatch(path))),
                key=_natural_index,
            )
            scripts = [ScriptPayload(code=files[match.group(0)].code) for match in artifacts]
        elif dialect.transpiles:
            source = _first_code(files, COMPONENT_SCRIPT_PATHS) or ""
            scripts = []
            if source.strip():
                try:
                    scripts.append(self.transpiler.transpile(source))
                except TranspileError as exc:
                    _log.warning("Failed to transpile preview script: %s", exc)
                    errors.append(f"Transpilation failed: {exception_hint(exc)}")
            else:
                scripts.append(ScriptPayload(code=""))
        else:
            scripts = [ScriptPayload(code=_first_code(files, SCRIPT_PATHS) or "")]

        error_paths = sorted(
            (match for path in files if (match := _ERROR_PATH.fullmatch(path))),
            key=_natural_index,
        )
        errors[:0] = [error_text(files[match.group(0)].code) for match in error_paths]
        return scripts, errors

    def assemble(
        self,
        files: FileSet | Mapping[str, Any],
        dialect: Dialect | str = Dialect.PLAIN,
        *,
        extra_head: Iterable[str] = (),
    ) -> str:
        """Return the preview document for ``files``.

        Missing markup, style or script files degrade to empty content.
        """
        resolved = Dialect.parse(dialect)
        file_set = _coerce_file_set(files)
        scripts, errors = self._scripts(file_set, resolved)

        head = self._head(resolved)
        for script in scripts:
            head.extend(line for line in script.head if line not in head)
        head.extend(extra_head)

        return self._template.render(
            css=escape_style(_first_code(file_set, STYLE_PATHS) or ""),
            head=head,
            markup=self._markup(file_set, resolved),
            errors=errors,
            scripts=[
                {"code": escape_script(script.code), "attributes": script.attributes}
                for script in scripts
            ],
        )


def assemble_document(
    files: FileSet | Mapping[str, Any],
    dialect: Dialect | str = Dialect.PLAIN,
    *,
    config: PlaysmithConfig | None = None,
    transpiler: Transpiler | None = None,
    extra_head: Iterable[str] = (),
) -> str:
    """Assemble a preview document with a throwaway :class:`DocumentAssembler`."""
    assembler = DocumentAssembler(config=config, transpiler=transpiler)
    return assembler.assemble(files, dialect, extra_head=extra_head)


__all__ = [
    "BrowserTranspiler",
    "DEFAULT_MOUNT",
    "DocumentAssembler",
    "ScriptPayload",
    "Transpiler",
    "assemble_document",
    "error_text",
    "escape_script",
]
