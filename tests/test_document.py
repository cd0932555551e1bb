from __future__ import annotations

import json

from bs4 import BeautifulSoup
import pytest

from playsmith.core.config import PlaysmithConfig
from playsmith.core.document import (
    BrowserTranspiler,
    DocumentAssembler,
    ScriptPayload,
    assemble_document,
    error_text,
    escape_script,
)
from playsmith.core.exceptions import TranspileError
from playsmith.core.models import FileSet, VirtualFile


def _files(**entries: str | tuple[str, bool]) -> FileSet:
    files: dict[str, VirtualFile] = {}
    for key, value in entries.items():
        path = "/" + key.replace("_", ".")
        code, hidden = value if isinstance(value, tuple) else (value, False)
        files[path] = VirtualFile(path=path, code=code, hidden=hidden)
    return FileSet(files=files)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class _FailingTranspiler:
    def transpile(self, source: str) -> ScriptPayload:
        raise TranspileError("Unexpected token (1:4)")


def test_plain_document_embeds_roles() -> None:
    files = _files(
        index_html="<h1>Hi</h1>",
        index_css="h1 { color: red; }",
        index_js="console.log('</script>');",
    )
    html = assemble_document(files, "plain")
    soup = _soup(html)

    assert soup.body.h1.text == "Hi"
    styles = [style.string for style in soup.find_all("style")]
    assert "h1 { color: red; }" in styles
    assert "box-sizing: border-box" in styles[0]
    (script,) = soup.find_all("script")
    assert script["type"] == "module"
    assert "<\\/script>" in script.string
    assert soup.find("pre") is None


def test_assembly_is_deterministic() -> None:
    files = _files(index_html="<p>x</p>", index_js="1")
    assembler = DocumentAssembler()
    assert assembler.assemble(files, "plain") == assembler.assemble(files, "plain")
    assert assembler.assemble(files, "plain") == assemble_document(files.to_dict(), "plain")


def test_missing_roles_degrade_to_defaults() -> None:
    soup = _soup(assemble_document(FileSet(), "plain"))
    assert soup.find(id="root") is not None
    (script,) = soup.find_all("script")
    assert not script.string


def test_styles_fall_back_to_styles_css() -> None:
    html = assemble_document(_files(styles_css="body { margin: 1px; }"), "plain")
    assert "<style>body { margin: 1px; }</style>" in html


def test_style_content_cannot_close_the_element() -> None:
    html = assemble_document(_files(index_css="a {} </style><script>x</script>"), "plain")
    assert "</style><script>x" not in html


def test_tailwind_injects_runtime_and_mount() -> None:
    config = PlaysmithConfig()
    soup = _soup(assemble_document(_files(index_html="<p class='p-4'>x</p>"), "tailwind", config=config))
    sources = [script.get("src") for script in soup.find_all("script")]
    assert config.tailwind_url in sources
    assert soup.find(id="root") is not None
    assert soup.find("p")["class"] == ["p-4"]


def test_react_uses_import_map_and_transpiler() -> None:
    files = _files(index_js="import React from 'react';\nexport default () => <b>x</b>;")
    html = assemble_document(files, "react", transpiler=BrowserTranspiler("https://example.test/babel.js"))
    soup = _soup(html)

    importmap = soup.find("script", attrs={"type": "importmap"})
    assert json.loads(importmap.string)["imports"]["react"].startswith("https://esm.sh/react")
    assert soup.find("script", attrs={"src": "https://example.test/babel.js"}) is not None
    babel = soup.find("script", attrs={"type": "text/babel"})
    assert babel["data-presets"] == "react"
    assert "<b>x</b>" in babel.string


def test_react_transpile_failure_renders_inline_error() -> None:
    files = _files(index_jsx="const = 1")
    soup = _soup(assemble_document(files, "react", transpiler=_FailingTranspiler()))
    panel = soup.find("pre", class_="playsmith-error")
    assert "Unexpected token" in panel.text
    assert soup.find("script", attrs={"type": "module"}) is None


def test_compiled_dialect_embeds_every_artifact_in_order() -> None:
    files = _files(
        index_html="<main></main>",
        index2_js=("console.log(2);", True),
        index_js=("console.log(1);", True),
    )
    soup = _soup(assemble_document(files, "scalajs"))
    modules = [script.string for script in soup.find_all("script", attrs={"type": "module"})]
    assert modules == ["console.log(1);", "console.log(2);"]
    assert soup.find(id="root") is not None


def test_compiled_errors_render_as_panels() -> None:
    files = _files(
        error_js="// Compilation failed: boom\n//\n// [error] <Main.scala>:3\n",
        index_js=("console.log(1);", True),
    )
    soup = _soup(assemble_document(files, "sjs"))
    panel = soup.find("pre", class_="playsmith-error")
    assert panel.text.startswith("Compilation failed: boom")
    assert "[error] <Main.scala>:3" in panel.text
    assert len(soup.find_all("script", attrs={"type": "module"})) == 1


def test_extra_head_lines_are_appended() -> None:
    html = assemble_document(
        FileSet(), "plain", extra_head=['<link rel="stylesheet" href="/theme.css" />']
    )
    soup = _soup(html)
    assert soup.head.find("link")["href"] == "/theme.css"


def test_unknown_dialect_is_rejected() -> None:
    with pytest.raises(ValueError):
        assemble_document(FileSet(), "svelte")


def test_helpers() -> None:
    assert escape_script("a</SCRIPT>b") == "a<\\/SCRIPT>b"
    assert error_text("// one\n//two\nthree") == "one\ntwo\nthree"
