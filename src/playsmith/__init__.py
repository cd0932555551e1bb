"""Build documentation playgrounds into self-contained live previews."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from playsmith.api import (
    build_playground,
    compile_pending,
    create_assembler,
    create_compiler,
    render_page,
    render_playground,
)
from playsmith.core.config import CompilerConfig, PlaysmithConfig, load_config
from playsmith.core.dialects import Dialect
from playsmith.core.document import DocumentAssembler, assemble_document
from playsmith.core.exceptions import (
    CompilationError,
    PlaygroundError,
    SourceFileMissingError,
    TranspileError,
)
from playsmith.core.fileset import build_file_set
from playsmith.core.meta import parse_meta
from playsmith.core.models import CodeBlock, FileMeta, FileSet, VirtualFile


try:
    __version__ = _pkg_version("playsmith")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    "CodeBlock",
    "CompilationError",
    "CompilerConfig",
    "Dialect",
    "DocumentAssembler",
    "FileMeta",
    "FileSet",
    "PlaygroundError",
    "PlaysmithConfig",
    "SourceFileMissingError",
    "TranspileError",
    "VirtualFile",
    "__version__",
    "assemble_document",
    "build_file_set",
    "build_playground",
    "compile_pending",
    "create_assembler",
    "create_compiler",
    "load_config",
    "parse_meta",
    "render_page",
    "render_playground",
]
