from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError
import pytest

from playsmith.core.config import CONFIG_FILENAME, PlaysmithConfig, load_config


def test_defaults_without_file(tmp_path: Path) -> None:
    config = load_config(cwd=tmp_path)
    assert config == PlaysmithConfig()
    assert config.compiler.executable == "mill"
    assert config.manifest_path(tmp_path) == tmp_path / ".cache" / "playsmith" / "manifest.json"


def test_reads_default_file(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        "cache_dir: build/cache\n"
        "default_template: component\n"
        "compiler:\n"
        "  executable: ./mill\n"
        "  timeout: 30\n"
        "  env:\n"
        "    JAVA_OPTS: -Xmx1g\n",
        encoding="utf-8",
    )
    config = load_config(cwd=tmp_path)
    assert config.default_template == "component"
    assert config.compiler.timeout == 30
    assert config.compiler.env == {"JAVA_OPTS": "-Xmx1g"}
    assert config.manifest_path(tmp_path) == tmp_path / "build" / "cache" / "manifest.json"


def test_accepts_namespaced_section(tmp_path: Path) -> None:
    path = tmp_path / "site.yml"
    path.write_text("playsmith:\n  transpiler: browser\n", encoding="utf-8")
    assert load_config(path).transpiler == "browser"


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == PlaysmithConfig()


def test_rejects_unknown_keys_and_bad_values(tmp_path: Path) -> None:
    path = tmp_path / "bad.yml"
    path.write_text("cache_dirs: nope\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_config(path)

    path.write_text("compiler:\n  modules_root: /abs/path\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_config(path)

    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yml")
