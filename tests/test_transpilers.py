from __future__ import annotations

from pathlib import Path

import pytest

from playsmith.adapters import transpilers
from playsmith.adapters.transpilers import EsbuildTranspiler, resolve_transpiler
from playsmith.core.config import PlaysmithConfig
from playsmith.core.document import BrowserTranspiler
from playsmith.core.exceptions import TranspileError


def _script(tmp_path: Path, body: str) -> str:
    script = tmp_path / "fake-esbuild"
    script.write_text(body, encoding="utf-8")
    script.chmod(0o755)
    return str(script)


def test_esbuild_output_becomes_module_script(tmp_path: Path) -> None:
    transpiler = EsbuildTranspiler(_script(tmp_path, "#!/bin/sh\necho 'compiled:'\ncat\n"))
    payload = transpiler.transpile("const a = <b />;")
    assert payload.code == "compiled:\nconst a = <b />;"
    assert payload.attributes == {"type": "module"}
    assert payload.head == ()


def test_esbuild_failure_raises(tmp_path: Path) -> None:
    transpiler = EsbuildTranspiler(_script(tmp_path, "#!/bin/sh\necho 'x: ERROR: Unexpected' >&2\nexit 1\n"))
    with pytest.raises(TranspileError, match="Unexpected"):
        transpiler.transpile("const = 1")


def test_missing_esbuild_raises(tmp_path: Path) -> None:
    with pytest.raises(TranspileError, match="not available"):
        EsbuildTranspiler(str(tmp_path / "missing")).transpile("1")


def test_resolve_transpiler(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(transpilers.shutil, "which", lambda name: None)
    assert isinstance(resolve_transpiler(PlaysmithConfig()), BrowserTranspiler)
    assert isinstance(resolve_transpiler(PlaysmithConfig(transpiler="esbuild")), EsbuildTranspiler)

    monkeypatch.setattr(transpilers.shutil, "which", lambda name: "/usr/bin/esbuild")
    resolved = resolve_transpiler(PlaysmithConfig())
    assert isinstance(resolved, EsbuildTranspiler)
    assert resolved.executable == "/usr/bin/esbuild"
    assert isinstance(resolve_transpiler(PlaysmithConfig(transpiler="browser")), BrowserTranspiler)
