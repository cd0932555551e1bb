"""Data model shared by the playground build pipeline."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
import json
from typing import Any


MetaValue = bool | str


@dataclass(frozen=True, slots=True)
class CodeBlock:
    """One fenced code block, in document order."""

    language: str = ""
    meta_text: str = ""
    source_text: str = ""


@dataclass(slots=True)
class FileMeta:
    """Structured attributes parsed from a fence language tag and meta string."""

    language: str = ""
    name: str | None = None
    file: str | None = None
    dir: str | None = None
    hidden: bool = False
    active: bool | None = None
    attributes: dict[str, MetaValue] = field(default_factory=dict)

    def get(self, key: str, default: MetaValue | None = None) -> MetaValue | None:
        """Return an open attribute value."""
        return self.attributes.get(key, default)

    def flag(self, key: str) -> bool:
        """Return whether an open attribute is set to ``True``."""
        return self.attributes.get(key) is True

    def option(self, key: str) -> str | None:
        """Return an open attribute only when it carries a string value."""
        value = self.attributes.get(key)
        return value if isinstance(value, str) and value else None

    @property
    def preview(self) -> bool:
        return self.flag("preview")

    @property
    def template(self) -> str | None:
        return self.option("template")


@dataclass(slots=True)
class VirtualFile:
    """A file shown in the playground editor and embedded in the preview."""

    path: str
    code: str
    hidden: bool = False
    active: bool = False
    language: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "hidden": self.hidden,
            "active": self.active,
            "language": self.language,
        }


@dataclass(slots=True)
class FileSet(Mapping[str, VirtualFile]):
    """Insertion-ordered mapping from virtual path to :class:`VirtualFile`."""

    files: dict[str, VirtualFile] = field(default_factory=dict)

    def __getitem__(self, path: str) -> VirtualFile:
        return self.files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def active_paths(self) -> list[str]:
        return [path for path, entry in self.files.items() if entry.active]

    def code(self, path: str) -> str | None:
        """Return the code stored at ``path`` when present."""
        entry = self.files.get(path)
        return entry.code if entry is not None else None

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {path: entry.to_dict() for path, entry in self.files.items()}

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Mapping[str, Any]]) -> FileSet:
        """Rebuild a file set from its JSON-compatible representation."""
        files: dict[str, VirtualFile] = {}
        for path, entry in payload.items():
            files[path] = VirtualFile(
                path=path,
                code=str(entry.get("code") or ""),
                hidden=bool(entry.get("hidden", False)),
                active=bool(entry.get("active", False)),
                language=str(entry.get("language") or entry.get("lang") or ""),
            )
        return cls(files=files)


@dataclass(slots=True)
class CacheEntry:
    """Manifest record describing one compiled snippet."""

    hash: str
    source_code: str
    compiled_path: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "source_code": self.source_code,
            "compiled_path": self.compiled_path,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CacheEntry:
        return cls(
            hash=str(payload["hash"]),
            source_code=str(payload["source_code"]),
            compiled_path=str(payload["compiled_path"]),
            timestamp=int(payload.get("timestamp") or 0),
        )


@dataclass(slots=True)
class CacheManifest:
    """Persisted collection of cache entries keyed by hash."""

    version: str
    entries: dict[str, CacheEntry] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "entries": {key: entry.to_dict() for key, entry in self.entries.items()},
        }


@dataclass(frozen=True, slots=True)
class CompiledArtifact:
    """Compiler output read back into memory."""

    source_path: str
    output_path: str
    code: str


__all__ = [
    "CacheEntry",
    "CacheManifest",
    "CodeBlock",
    "CompiledArtifact",
    "FileMeta",
    "FileSet",
    "MetaValue",
    "VirtualFile",
]
