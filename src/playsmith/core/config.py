"""Configuration models for the playground pipeline.

PlaysmithConfig

`cache_dir` (`Path`)
: Directory holding the compile cache manifest. Relative paths resolve
  against the working directory.

`manifest_name` (`str`)
: File name of the manifest inside `cache_dir`.

`compiler` (`CompilerConfig`)
: External compiler settings, see below.

`default_template` (`str | None`)
: Template applied to preview snippets that do not request one. Leave unset
  to let the content sniffing heuristic decide.

`transpiler` (`str`)
: Strategy used by the component dialect: `esbuild` shells out to the
  esbuild binary, `browser` defers to Babel standalone inside the preview,
  `auto` picks esbuild when it is on the `PATH`.

`tailwind_url`, `babel_url` (`str`)
: Runtime scripts injected into the preview head.

`import_map` (`dict[str, str]`)
: Module alias table emitted for the component dialect.

CompilerConfig

`executable` (`str`)
: Compiler launcher. A `./mill` script inside the working directory takes
  precedence over the default `mill`.

`modules_root` (`Path`)
: Root of the generated modules, relative to the working directory.

`output_root` (`Path`)
: Root of the compiler output tree.

`output_target` (`str`)
: Build task invoked on each module; also names the output directory.

`timeout` (`float | None`)
: Seconds before a compilation is abandoned and reported as failed.

`max_output` (`int`)
: Number of bytes retained from the compiler's stdout and stderr.

`env` (`dict[str, str]`)
: Extra environment variables for the compiler process.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml


CONFIG_FILENAME = "playsmith.yml"

DEFAULT_IMPORT_MAP = {
    "react": "https://esm.sh/react@19",
    "react-dom": "https://esm.sh/react-dom@19",
    "react-dom/client": "https://esm.sh/react-dom@19/client",
}


class CompilerConfig(BaseModel):
    """Settings for the external compiler invocation."""

    model_config = ConfigDict(extra="forbid")

    executable: str = "mill"
    modules_root: Path = Path("demos/autogen")
    output_root: Path = Path("out")
    output_target: str = "fullLinkJS"
    timeout: float | None = Field(default=300.0, gt=0)
    max_output: int = Field(default=64 * 1024, gt=0)
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("modules_root", "output_root")
    @classmethod
    def _relative_only(cls, value: Path) -> Path:
        if value.is_absolute():
            raise ValueError("must be relative to the working directory")
        return value


class PlaysmithConfig(BaseModel):
    """Top-level configuration, usually read from ``playsmith.yml``."""

    model_config = ConfigDict(extra="forbid")

    cache_dir: Path = Path(".cache/playsmith")
    manifest_name: str = "manifest.json"
    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
    default_template: Literal["basic", "component", "custom"] | None = None
    transpiler: Literal["auto", "esbuild", "browser"] = "auto"
    tailwind_url: str = "https://cdn.jsdelivr.net/npm/@tailwindcss/browser@4"
    babel_url: str = "https://unpkg.com/@babel/standalone@7/babel.min.js"
    import_map: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_IMPORT_MAP))

    def manifest_path(self, cwd: Path) -> Path:
        """Return the absolute manifest location for ``cwd``."""
        root = self.cache_dir if self.cache_dir.is_absolute() else Path(cwd) / self.cache_dir
        return root / self.manifest_name


def load_config(path: str | Path | None = None, *, cwd: str | Path | None = None) -> PlaysmithConfig:
    """Load configuration from ``path`` or from ``playsmith.yml`` in ``cwd``.

    A missing default file yields the built-in defaults; a missing explicit
    file is an error.
    """
    if path is None:
        candidate = Path(cwd or Path.cwd()) / CONFIG_FILENAME
        if not candidate.exists():
            return PlaysmithConfig()
    else:
        candidate = Path(path)

    raw = candidate.read_text(encoding="utf-8")
    payload: Any = yaml.safe_load(raw) if raw.strip() else {}
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValueError(f"Configuration file '{candidate}' must contain a mapping.")
    section = payload.get("playsmith", payload)
    return PlaysmithConfig.model_validate(section)


__all__ = [
    "CONFIG_FILENAME",
    "CompilerConfig",
    "DEFAULT_IMPORT_MAP",
    "PlaysmithConfig",
    "load_config",
]
