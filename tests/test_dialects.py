from __future__ import annotations

import pytest

from playsmith.core.dialects import Dialect, requires_compilation


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, Dialect.PLAIN),
        ("", Dialect.PLAIN),
        ("vanilla", Dialect.PLAIN),
        ("Tailwind", Dialect.TAILWIND),
        ("react", Dialect.REACT),
        ("sjs", Dialect.SCALAJS),
        ("sjs-tailwind", Dialect.SCALAJS_TAILWIND),
        (Dialect.REACT, Dialect.REACT),
    ],
)
def test_parse_accepts_aliases(value, expected) -> None:
    assert Dialect.parse(value) is expected


def test_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown playground preset"):
        Dialect.parse("svelte")


def test_dialect_capabilities() -> None:
    assert Dialect.REACT.transpiles and Dialect.REACT.uses_tailwind
    assert Dialect.SCALAJS.compiles and not Dialect.SCALAJS.uses_tailwind
    assert Dialect.SCALAJS_TAILWIND.compiles and Dialect.SCALAJS_TAILWIND.uses_tailwind
    assert not Dialect.PLAIN.compiles


def test_requires_compilation() -> None:
    assert requires_compilation("scala", True)
    assert requires_compilation(" Scala ", True)
    assert not requires_compilation("scala", False)
    assert not requires_compilation("js", True)
