from __future__ import annotations

import asyncio
from pathlib import Path

from bs4 import BeautifulSoup

from playsmith.adapters.mill import MillCompiler
from playsmith.api import build_playground, create_compiler, render_page, render_playground
from playsmith.core.config import CompilerConfig, PlaysmithConfig
from playsmith.core.models import CodeBlock


BROWSER = PlaysmithConfig(transpiler="browser")


def test_create_compiler_wires_mill_and_cache(tmp_path: Path) -> None:
    config = PlaysmithConfig(cache_dir=Path("cache"), compiler=CompilerConfig(executable="mill-x"))
    compiler = create_compiler(tmp_path, config)
    assert isinstance(compiler.adapter, MillCompiler)
    assert compiler.adapter.config.executable == "mill-x"
    assert compiler.cache.manifest_path == (tmp_path / "cache" / "manifest.json").resolve()


def test_render_playground_returns_files_and_document(tmp_path: Path) -> None:
    files, document = render_playground(
        [CodeBlock("html", "index.html", "<p>Hi</p>"), CodeBlock("js", "index.js", "console.log(1)")],
        tmp_path,
        "plain",
        config=BROWSER,
    )
    assert list(files) == ["/index.html", "/index.js"]
    soup = BeautifulSoup(document, "html.parser")
    assert soup.body.p.text == "Hi"


def test_build_playground_compiles_previews(tmp_path: Path, compiler, adapter) -> None:
    files, document = asyncio.run(
        build_playground(
            [CodeBlock("scala", "preview", 'div("Hi")')],
            tmp_path,
            "sjs",
            config=BROWSER,
            compiler=compiler,
        )
    )
    assert files["/index.js"].hidden
    assert files.code("/index.js") in document
    assert len(adapter.compiled) == 1


def test_render_page_builds_every_playground_once(tmp_path: Path, compiler, adapter) -> None:
    page = "\n".join(
        [
            "# Title",
            "",
            "```scala preview",
            'div("same")',
            "```",
            "",
            "```scala preview",
            'div("same")',
            "```",
            "",
            '<Playground preset="plain">',
            "",
            "```js index.js",
            "console.log('plain');",
            "```",
            "",
            "</Playground>",
        ]
    )
    html = asyncio.run(render_page(page, tmp_path, config=BROWSER, compiler=compiler))
    soup = BeautifulSoup(html, "html.parser")

    frames = soup.select("div.playground > iframe")
    assert len(frames) == 3
    assert "console.log('plain');" in frames[2]["srcdoc"]
    assert len(adapter.compiled) == 1
    assert soup.h1.text == "Title"
