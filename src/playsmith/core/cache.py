"""Content-addressed cache for compiled preview snippets.

The manifest lives in a single JSON file under the working directory. It is
loaded on first use, kept in memory for the lifetime of the cache object, and
flushed after every mutation. A missing, unreadable or outdated manifest is
treated as empty: losing the cache costs recompilation, never a failed build.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import json
import logging
from pathlib import Path
from threading import RLock
import time
from typing import Any

from .config import PlaysmithConfig
from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import CacheIOError
from .models import CacheEntry, CacheManifest


CACHE_VERSION = "1.0.0"

_log = logging.getLogger(__name__)
_LOCKS: dict[Path, RLock] = {}
_LOCKS_GUARD = RLock()


def _lock_for(path: Path) -> RLock:
    with _LOCKS_GUARD:
        lock = _LOCKS.get(path)
        if lock is None:
            lock = RLock()
            _LOCKS[path] = lock
        return lock


def compute_hash(source: str, template: str, params: dict[str, Any] | None = None) -> str:
    """Return the cache key for a templated source and its template identity."""
    payload = {"source": source, "template": template, "params": params or {}}
    encoded = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Summary of the manifest content."""

    total_entries: int
    oldest_entry: int | None
    newest_entry: int | None


def _empty_manifest() -> CacheManifest:
    return CacheManifest(version=CACHE_VERSION, entries={})


def read_manifest(path: Path) -> CacheManifest:
    """Read a manifest from disk.

    Raises:
        FileNotFoundError: When no manifest exists yet.
        CacheIOError: When the file cannot be read or does not hold a manifest.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exc:
        raise CacheIOError(f"Unable to read cache manifest '{path}': {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CacheIOError(f"Cache manifest '{path}' is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise CacheIOError(f"Cache manifest '{path}' must contain a JSON object.")

    version = str(payload.get("version", ""))
    if version != CACHE_VERSION:
        _log.info("Cache version mismatch (%s != %s), invalidating cache", version, CACHE_VERSION)
        return _empty_manifest()

    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, dict):
        raise CacheIOError(f"Cache manifest '{path}' has no entries mapping.")

    entries: dict[str, CacheEntry] = {}
    for key, value in raw_entries.items():
        if not isinstance(value, dict):
            continue
        try:
            entry = CacheEntry.from_dict(value)
        except (KeyError, TypeError, ValueError):
            _log.debug("dropping malformed cache entry %s", key)
            continue
        entries[str(key)] = entry
    return CacheManifest(version=version, entries=entries)


class CompileCache:
    """Manifest-backed store deciding whether a compiled artifact can be reused."""

    def __init__(
        self,
        cwd: str | Path,
        *,
        config: PlaysmithConfig | None = None,
        manifest_path: str | Path | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.cwd = Path(cwd)
        resolved_config = config or PlaysmithConfig()
        path = Path(manifest_path) if manifest_path is not None else resolved_config.manifest_path(self.cwd)
        self.manifest_path = path.resolve()
        self.emitter = emitter or NullEmitter()
        self._lock = _lock_for(self.manifest_path)
        self._loaded: CacheManifest | None = None

    @property
    def manifest(self) -> CacheManifest:
        """Return the in-memory manifest, loading it on first access."""
        loaded = self._loaded
        if loaded is not None:
            return loaded
        with self._lock:
            if self._loaded is None:
                self._loaded = self._load()
            return self._loaded

    def _load(self) -> CacheManifest:
        try:
            return read_manifest(self.manifest_path)
        except FileNotFoundError:
            return _empty_manifest()
        except CacheIOError as exc:
            self.emitter.warning(f"Resetting compile cache: {exc}", exc)
            self.emitter.event("cache_reset", {"path": str(self.manifest_path), "reason": str(exc)})
            return _empty_manifest()

    def lookup(self, hash_: str) -> CacheEntry | None:
        """Return the entry recorded for ``hash_``."""
        return self.manifest.entries.get(hash_)

    def should_recompile(
        self, hash_: str, exact_source: str, expected_output_path: str | Path
    ) -> bool:
        """Return whether the snippet must go through the compiler again."""
        entry = self.lookup(hash_)
        if entry is None:
            return True
        if entry.source_code != exact_source:
            return True
        return not Path(expected_output_path).exists()

    def record(self, hash_: str, exact_source: str, output_path: str | Path) -> CacheEntry:
        """Store an entry for ``hash_`` and flush the manifest."""
        entry = CacheEntry(
            hash=hash_,
            source_code=exact_source,
            compiled_path=str(output_path),
            timestamp=int(time.time() * 1000),
        )
        with self._lock:
            self.manifest.entries[hash_] = entry
            self.flush()
        return entry

    def discard(self, hash_: str) -> None:
        """Remove the entry for ``hash_`` when present."""
        with self._lock:
            if self.manifest.entries.pop(hash_, None) is not None:
                self.flush()

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self.manifest.entries.clear()
            self.flush()

    def hashes(self) -> list[str]:
        return list(self.manifest.entries)

    def stats(self) -> CacheStats:
        timestamps = [entry.timestamp for entry in self.manifest.entries.values()]
        return CacheStats(
            total_entries=len(timestamps),
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
        )

    def flush(self) -> None:
        """Persist the manifest; write failures only cost cache efficiency."""
        with self._lock:
            payload = json.dumps(self.manifest.to_dict(), indent=2, sort_keys=True)
            tmp_path = self.manifest_path.with_suffix(".tmp")
            try:
                self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(payload, encoding="utf-8")
                tmp_path.replace(self.manifest_path)
            except OSError as exc:
                self.emitter.warning(f"Failed to save cache manifest '{self.manifest_path}'.", exc)


__all__ = [
    "CACHE_VERSION",
    "CacheStats",
    "CompileCache",
    "compute_hash",
    "read_manifest",
]
