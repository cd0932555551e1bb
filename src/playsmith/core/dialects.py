"""Closed set of preview dialects (presets) understood by the pipeline."""

from __future__ import annotations

from enum import Enum


class Dialect(str, Enum):
    """Flavour of preview document assembly."""

    PLAIN = "plain"
    TAILWIND = "tailwind"
    REACT = "react"
    SCALAJS = "scalajs"
    SCALAJS_TAILWIND = "scalajs-tailwind"

    @classmethod
    def parse(cls, value: str | Dialect | None) -> Dialect:
        """Resolve a preset selector, accepting the historical aliases."""
        if isinstance(value, Dialect):
            return value
        token = (value or "").strip().lower()
        if not token:
            return cls.PLAIN
        token = _ALIASES.get(token, token)
        try:
            return cls(token)
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown playground preset '{value}' (expected one of {choices}).") from None

    @property
    def uses_tailwind(self) -> bool:
        return self in {Dialect.TAILWIND, Dialect.REACT, Dialect.SCALAJS_TAILWIND}

    @property
    def transpiles(self) -> bool:
        return self is Dialect.REACT

    @property
    def compiles(self) -> bool:
        return self in {Dialect.SCALAJS, Dialect.SCALAJS_TAILWIND}


_ALIASES = {
    "vanilla": "plain",
    "html": "plain",
    "js": "plain",
    "sjs": "scalajs",
    "sjs-tailwind": "scalajs-tailwind",
    "scala": "scalajs",
}

COMPILED_LANGUAGES = frozenset({"scala"})


def requires_compilation(language: str, preview: bool) -> bool:
    """Return whether a block must go through the external compiler."""
    return preview and language.strip().lower() in COMPILED_LANGUAGES


__all__ = ["COMPILED_LANGUAGES", "Dialect", "requires_compilation"]
