"""Parse fence language tags and meta strings into :class:`FileMeta` records.

Tokens are separated by runs of whitespace or commas. The language tag is
always token zero. A bare token shaped like ``name.ext`` sets the filename,
``key=value`` tokens set attributes (only the literals ``true`` and ``false``
are coerced), and any other bare token becomes a flag set to ``True``.
"""

from __future__ import annotations

import logging
import re

from .exceptions import MetaParseError
from .models import FileMeta, MetaValue


_log = logging.getLogger(__name__)

_TOKEN_SPLIT = re.compile(r"[\s,]+")
_FILENAME = re.compile(r"[\w][\w.\-/]*\.\w+")
_KEY = re.compile(r"[A-Za-z_][\w\-]*")
_BOOLEAN_FIELDS = frozenset({"hidden", "active"})
_STRING_FIELDS = frozenset({"name", "file", "dir"})
_LANGUAGE_KEYS = frozenset({"language", "lang"})


def is_filename(token: str) -> bool:
    """Return whether a bare token looks like ``identifier.extension``."""
    return _FILENAME.fullmatch(token) is not None


def coerce_value(raw: str) -> MetaValue:
    """Coerce the boolean literals, keeping every other value as a string."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    return raw


def split_tokens(language: str | None, meta: str | None) -> list[str]:
    """Return the non-empty tokens of a language tag followed by its meta string."""
    joined = f"{language or ''} {meta or ''}"
    return [token for token in _TOKEN_SPLIT.split(joined) if token]


def _assign(result: FileMeta, key: str, value: MetaValue) -> None:
    if key in _LANGUAGE_KEYS:
        if not isinstance(value, str):
            raise MetaParseError(f"'{key}' expects a language name")
        result.language = value
    elif key in _BOOLEAN_FIELDS:
        if not isinstance(value, bool):
            raise MetaParseError(f"'{key}' expects true or false, got '{value}'")
        setattr(result, key, value)
    elif key in _STRING_FIELDS:
        if not isinstance(value, str):
            raise MetaParseError(f"'{key}' expects a path")
        setattr(result, key, value)
    else:
        result.attributes[key] = value


def _apply_token(result: FileMeta, token: str) -> None:
    if "=" in token:
        key, raw = token.split("=", 1)
        if not _KEY.fullmatch(key):
            raise MetaParseError(f"invalid attribute name in '{token}'")
        value: MetaValue = coerce_value(raw) if raw else True
        _assign(result, key, value)
        return

    if is_filename(token):
        result.name = token
    elif token in _BOOLEAN_FIELDS:
        setattr(result, token, True)
    else:
        result.attributes[token] = True


def parse_meta(language: str | None, meta: str | None = None) -> FileMeta:
    """Parse a fence language tag and meta string.

    Malformed tokens never fail the parse: they are kept verbatim as opaque
    flags so downstream consumers can still inspect them.
    """
    tokens = split_tokens(language, meta)
    result = FileMeta()
    if language and language.strip():
        result.language = tokens.pop(0)

    for token in tokens:
        try:
            _apply_token(result, token)
        except MetaParseError as exc:
            _log.debug("treating meta token %r as a flag: %s", token, exc)
            result.attributes[token] = True
    return result


__all__ = ["coerce_value", "is_filename", "parse_meta", "split_tokens"]
