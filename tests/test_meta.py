from __future__ import annotations

import pytest

from playsmith.core.meta import coerce_value, is_filename, parse_meta, split_tokens


def test_language_tag_is_token_zero() -> None:
    meta = parse_meta("jsx", "App.jsx active")
    assert meta.language == "jsx"
    assert meta.name == "App.jsx"
    assert meta.active is True
    assert meta.hidden is False


def test_commas_separate_tokens() -> None:
    meta = parse_meta("css", "styles.css,hidden")
    assert meta.name == "styles.css"
    assert meta.hidden is True


def test_key_value_only_coerces_boolean_literals() -> None:
    meta = parse_meta("scala", "preview template=component count=3 strict=false")
    assert meta.preview is True
    assert meta.template == "component"
    assert meta.get("count") == "3"
    assert meta.get("strict") is False


def test_known_fields_are_assigned() -> None:
    meta = parse_meta("js", "file=snippets/app.js dir=src hidden=true active=false")
    assert meta.file == "snippets/app.js"
    assert meta.dir == "src"
    assert meta.hidden is True
    assert meta.active is False
    assert meta.attributes == {}


def test_language_can_be_overridden() -> None:
    meta = parse_meta("tsx", "lang=ts")
    assert meta.language == "ts"


def test_last_filename_wins() -> None:
    assert parse_meta("js", "a.js b.js").name == "b.js"


def test_empty_value_is_a_flag() -> None:
    assert parse_meta("js", "title=").get("title") is True


def test_unknown_bare_tokens_become_flags() -> None:
    meta = parse_meta("scala", "preview tailwind")
    assert meta.flag("preview")
    assert meta.flag("tailwind")
    assert meta.option("tailwind") is None


@pytest.mark.parametrize("token", ["hidden=maybe", "9bad=1", "name=true"])
def test_malformed_tokens_are_kept_as_flags(token: str) -> None:
    meta = parse_meta("js", token)
    assert meta.attributes == {token: True}
    assert meta.hidden is False
    assert meta.name is None


def test_empty_inputs() -> None:
    meta = parse_meta(None, None)
    assert meta.language == ""
    assert meta.name is None
    assert meta.active is None
    assert meta.attributes == {}


def test_missing_language_tag_keeps_meta_tokens() -> None:
    meta = parse_meta("", "index.js")
    assert meta.language == ""
    assert meta.name == "index.js"


def test_parsing_is_idempotent() -> None:
    first = parse_meta("scala", "Main.scala preview template=basic imports=scala.util.Random")
    second = parse_meta("scala", "Main.scala preview template=basic imports=scala.util.Random")
    assert first == second
    assert first is not second


def test_helpers() -> None:
    assert is_filename("index.js")
    assert is_filename("src/App.tsx")
    assert not is_filename("preview")
    assert coerce_value("true") is True
    assert coerce_value("True") == "True"
    assert split_tokens("js", " a ,, b ") == ["js", "a", "b"]
