from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from playsmith.core.cache import CompileCache
from playsmith.ui.cli import app


FENCES = """```html index.html
<p>Hello</p>
```

```css index.css
p { color: blue; }
```
"""


def test_preview_writes_document_and_files(tmp_path: Path) -> None:
    source = tmp_path / "fences.md"
    source.write_text(FENCES, encoding="utf-8")
    output = tmp_path / "out" / "preview.html"
    files_json = tmp_path / "files.json"

    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "preview",
            str(source),
            "--output",
            str(output),
            "--files-json",
            str(files_json),
            "--cwd",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "<p>Hello</p>" in output.read_text(encoding="utf-8")
    payload = json.loads(files_json.read_text(encoding="utf-8"))
    assert list(payload) == ["/index.html", "/index.css"]
    assert payload["/index.html"]["active"] is True


def test_preview_prints_to_stdout(tmp_path: Path) -> None:
    source = tmp_path / "fences.md"
    source.write_text(FENCES, encoding="utf-8")
    result = CliRunner().invoke(app, ["preview", str(source), "--cwd", str(tmp_path)])
    assert result.exit_code == 0
    assert result.stdout.startswith("<!DOCTYPE html>")


def test_preview_rejects_unknown_preset(tmp_path: Path) -> None:
    source = tmp_path / "fences.md"
    source.write_text(FENCES, encoding="utf-8")
    result = CliRunner().invoke(app, ["preview", str(source), "--preset", "svelte"])
    assert result.exit_code == 2


def test_preview_summarises_unreadable_sources(tmp_path: Path) -> None:
    source = tmp_path / "fences.md"
    source.write_text(FENCES + "\n```js file=missing.js\n```\n", encoding="utf-8")
    output = tmp_path / "preview.html"

    result = CliRunner().invoke(app, ["preview", str(source), "-o", str(output), "--cwd", str(tmp_path)])
    assert result.exit_code == 0
    assert "1 playground source could not be read" in result.output
    assert output.is_file()


def test_render_page(tmp_path: Path) -> None:
    page = tmp_path / "page.md"
    page.write_text("# Page\n\n<Playground>\n\n" + FENCES + "\n</Playground>\n", encoding="utf-8")
    output = tmp_path / "page.html"

    result = CliRunner().invoke(app, ["render", str(page), "-o", str(output), "--cwd", str(tmp_path)])
    assert result.exit_code == 0, result.output
    html = output.read_text(encoding="utf-8")
    assert '<div class="playground"' in html
    assert "<h1>Page</h1>" in html


def test_invalid_config_exits_with_error(tmp_path: Path) -> None:
    source = tmp_path / "fences.md"
    source.write_text(FENCES, encoding="utf-8")
    config = tmp_path / "playsmith.yml"
    config.write_text("unknown_key: 1\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["preview", str(source), "--cwd", str(tmp_path)])
    assert result.exit_code == 1


def test_cache_stats_and_clear(tmp_path: Path) -> None:
    output = tmp_path / "main.js"
    output.write_text("1", encoding="utf-8")
    CompileCache(tmp_path).record("abc", "source", output)

    runner = CliRunner()
    stats = runner.invoke(app, ["cache", "stats", "--cwd", str(tmp_path)])
    assert stats.exit_code == 0
    assert "Entries" in stats.stdout
    assert "1" in stats.stdout

    cleared = runner.invoke(app, ["cache", "clear", "--cwd", str(tmp_path)])
    assert cleared.exit_code == 0
    assert "Removed 1 cache entries." in cleared.stdout
    assert CompileCache(tmp_path).hashes() == []


def test_compile_without_modules(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["compile", "--cwd", str(tmp_path)])
    assert result.exit_code == 0
    assert "No generated modules found." in result.stdout


def test_compile_reports_failures(tmp_path: Path) -> None:
    launcher = tmp_path / "mill"
    launcher.write_text("#!/bin/sh\necho 'boom' >&2\nexit 1\n", encoding="utf-8")
    launcher.chmod(0o755)
    module = tmp_path / "demos" / "autogen" / "habc" / "src"
    module.mkdir(parents=True)
    (module / "Main.scala").write_text("package demos.autogen.habc\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["compile", "--cwd", str(tmp_path)])
    assert result.exit_code == 1
    assert "habc" in result.stdout
