"""Wrap preview snippets into compile units for the external compiler.

Three strategies are available:

``basic``
: the snippet is an expression rendered into the mount point from a generated
  ``@main`` entry point.

``component``
: the snippet becomes the body of an ``AppComponent`` unit that is instantiated
  and mounted.

``custom``
: the snippet is emitted verbatim after the package header; the author supplies
  the entry point.

When no template is requested, :func:`detect_template` sniffs the source. The
heuristic is best effort and an explicit template always wins.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path, PurePath
import re
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template


PARTIALS_DIR = Path(__file__).resolve().parent / "partials"
PACKAGE_PREFIX = "demos.autogen"
MOUNT_SELECTOR = "#root"
DEFAULT_TEMPLATE = "basic"
TEMPLATE_NAMES = ("basic", "component", "custom")
_DECLARATION_MARKERS = ("def ", "class ", "object ", "trait ", "enum ")
_ENTRY_POINT_MARKER = "@main"
_LIST_SPLIT = re.compile(r"[,;|]")

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TemplateParams:
    """Parameters injected into a compile-unit template."""

    module_id: str
    imports: tuple[str, ...] = field(default_factory=tuple)
    deps: tuple[str, ...] = field(default_factory=tuple)
    prefix: str = PACKAGE_PREFIX

    @property
    def package(self) -> str:
        return f"{self.prefix}.{self.module_id}"

    def identity(self) -> dict[str, Any]:
        """Return the parts of the parameters that affect the compiled output."""
        return {"imports": list(self.imports), "deps": list(self.deps)}


def package_prefix_for(modules_root: str | PurePath) -> str:
    """Return the Scala package matching a generated-modules directory."""
    return ".".join(PurePath(modules_root).parts)


def split_list_option(value: Any) -> tuple[str, ...]:
    """Split a list-valued meta option into trimmed entries.

    Commas already separate meta tokens, so entries are joined with ``;`` or
    ``|`` inside a single value (``imports=scala.util.Random;org.example.*``).
    """
    if not isinstance(value, str):
        return ()
    return tuple(item.strip() for item in _LIST_SPLIT.split(value) if item.strip())


def detect_template(code: str) -> str:
    """Guess the template for a snippet that does not request one."""
    trimmed = code.strip()
    if _ENTRY_POINT_MARKER in trimmed:
        return "custom"
    if any(marker in trimmed for marker in _DECLARATION_MARKERS):
        return "custom"
    if ";" not in trimmed:
        return "basic"
    return "component"


class TemplateEngine:
    """Render compile-unit boilerplate using Jinja2 partials."""

    def __init__(
        self,
        template_dir: Path = PARTIALS_DIR,
        *,
        default_template: str | None = None,
        mount_selector: str = MOUNT_SELECTOR,
        package_prefix: str = PACKAGE_PREFIX,
    ) -> None:
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            keep_trailing_newline=True,
            autoescape=False,
            undefined=StrictUndefined,
        )
        self.default_template = default_template
        self.mount_selector = mount_selector
        self.package_prefix = package_prefix
        self._templates: dict[str, Template] = {}

    def _get_template(self, name: str) -> Template:
        template = self._templates.get(name)
        if template is None:
            template = self.env.get_template(name)
            self._templates[name] = template
        return template

    def resolve(self, code: str, template_name: str | None = None) -> str:
        """Return the strategy used for ``code``."""
        requested = (template_name or self.default_template or "").strip().lower()
        if not requested:
            return detect_template(code)
        if requested not in TEMPLATE_NAMES:
            _log.warning("Unknown preview template '%s', using '%s'.", requested, DEFAULT_TEMPLATE)
            return DEFAULT_TEMPLATE
        return requested

    def apply(
        self,
        user_code: str,
        template_name: str | None,
        params: TemplateParams,
    ) -> str:
        """Wrap ``user_code`` according to the resolved template."""
        name = self.resolve(user_code, template_name)
        template = self._get_template(f"scala_{name}.scala")
        return template.render(
            package=params.package,
            imports=list(params.imports),
            code=user_code.rstrip("\n"),
            mount=self.mount_selector,
        )

    def render_partial(self, name: str, context: Mapping[str, Any]) -> str:
        """Render an auxiliary partial such as a build descriptor."""
        return self._get_template(name).render(**dict(context))


def default_imports(values: Sequence[str] | None) -> tuple[str, ...]:
    """Normalise import entries, prefixing bare paths with ``import``."""
    normalised: list[str] = []
    for value in values or ():
        entry = value.strip()
        if not entry:
            continue
        normalised.append(entry if entry.startswith("import ") else f"import {entry}")
    return tuple(normalised)


__all__ = [
    "DEFAULT_TEMPLATE",
    "MOUNT_SELECTOR",
    "PACKAGE_PREFIX",
    "PARTIALS_DIR",
    "TEMPLATE_NAMES",
    "TemplateEngine",
    "TemplateParams",
    "default_imports",
    "detect_template",
    "package_prefix_for",
    "split_list_option",
]
