"""Python-Markdown integration turning playground markup into live previews.

Two shapes are recognised outside of fenced code:

* ``<Playground preset="react" title="Counter">`` … ``</Playground>``
  containers (``ReactPlayground`` and ``TailwindPlayground`` imply their
  preset) whose fenced blocks form one playground;
* a standalone ```` ```scala preview ```` fence, which becomes a compiled
  playground on its own.

Each occurrence is replaced by a ``<div class="playground">`` carrying the
JSON file set and an ``<iframe srcdoc>`` with the assembled document.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
import re

from markdown import Markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markupsafe import escape
from slugify import slugify

from playsmith.core.dialects import COMPILED_LANGUAGES, Dialect
from playsmith.core.meta import parse_meta
from playsmith.core.models import CodeBlock, FileSet


IFRAME_SANDBOX = "allow-scripts allow-modals"

_CONTAINER_PRESETS: dict[str, Dialect | None] = {
    "Playground": None,
    "ReactPlayground": Dialect.REACT,
    "TailwindPlayground": Dialect.TAILWIND,
}
_OPEN_RE = re.compile(r"^\s*<(?P<tag>Playground|ReactPlayground|TailwindPlayground)(?P<attrs>(?:\s[^>]*)?)>\s*$")
_ATTR_RE = re.compile(r"""(?P<key>[A-Za-z_][\w\-]*)\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')""")
_FENCE_RE = re.compile(r"^(?P<indent>\s{0,3})(?P<fence>`{3,}|~{3,})\s*(?P<info>.*)$")

_log = logging.getLogger(__name__)


@dataclass(slots=True)
class PlaygroundSpec:
    """One playground found in a Markdown source, with its line span."""

    index: int
    preset: Dialect
    blocks: list[CodeBlock] = field(default_factory=list)
    title: str | None = None
    start: int = 0
    end: int = 0

    @property
    def element_id(self) -> str | None:
        if not self.title:
            return None
        return slugify(self.title) or None


PlaygroundRenderer = Callable[[PlaygroundSpec], tuple[FileSet, str]]


def parse_attributes(text: str) -> dict[str, str]:
    """Return the quoted ``key="value"`` pairs of a container tag."""
    attributes: dict[str, str] = {}
    for match in _ATTR_RE.finditer(text):
        value = match.group("dq") if match.group("dq") is not None else match.group("sq")
        attributes[match.group("key")] = value or ""
    return attributes


def _split_info(info: str) -> tuple[str, str]:
    info = info.strip()
    if not info:
        return "", ""
    language, _, meta = info.partition(" ")
    return language.strip("{}. "), meta.strip()


def _read_fence(lines: Sequence[str], index: int) -> tuple[CodeBlock, int] | None:
    """Read the fence opening at ``index``; return the block and the closing line."""
    opening = _FENCE_RE.match(lines[index])
    if opening is None:
        return None
    fence = opening.group("fence")
    indent = len(opening.group("indent"))
    closing = re.compile(rf"^\s{{0,3}}{re.escape(fence[0])}{{{len(fence)},}}\s*$")

    body: list[str] = []
    cursor = index + 1
    while cursor < len(lines):
        line = lines[cursor]
        if closing.match(line):
            language, meta = _split_info(opening.group("info"))
            source = "\n".join(body)
            return CodeBlock(language=language, meta_text=meta, source_text=source), cursor
        body.append(line[indent:] if indent and line[:indent].isspace() else line)
        cursor += 1
    return None


def _standalone_preset(block: CodeBlock) -> Dialect | None:
    meta = parse_meta(block.language, block.meta_text)
    if meta.language.lower() not in COMPILED_LANGUAGES or not meta.preview:
        return None
    requested = meta.option("preset")
    if requested:
        try:
            return Dialect.parse(requested)
        except ValueError:
            _log.warning("Ignoring unknown preset '%s' on preview fence.", requested)
    return Dialect.SCALAJS_TAILWIND if meta.flag("tailwind") else Dialect.SCALAJS


def collect_fenced_blocks(lines: Sequence[str]) -> list[CodeBlock]:
    """Return every fenced block of ``lines`` in document order."""
    blocks: list[CodeBlock] = []
    index = 0
    while index < len(lines):
        fenced = _read_fence(lines, index) if _FENCE_RE.match(lines[index]) else None
        if fenced is None:
            index += 1
            continue
        blocks.append(fenced[0])
        index = fenced[1] + 1
    return blocks


def scan_playgrounds(lines: Sequence[str]) -> list[PlaygroundSpec]:
    """Locate every playground in ``lines`` in document order."""
    found: list[PlaygroundSpec] = []
    index = 0
    total = len(lines)

    while index < total:
        line = lines[index]

        if _FENCE_RE.match(line):
            fenced = _read_fence(lines, index)
            if fenced is None:
                break
            block, end = fenced
            preset = _standalone_preset(block)
            if preset is not None:
                found.append(PlaygroundSpec(len(found), preset, [block], start=index, end=end))
            index = end + 1
            continue

        opening = _OPEN_RE.match(line)
        if opening is None:
            index += 1
            continue

        tag = opening.group("tag")
        attributes = parse_attributes(opening.group("attrs") or "")
        preset = _CONTAINER_PRESETS[tag]
        if preset is None:
            try:
                preset = Dialect.parse(attributes.get("preset"))
            except ValueError:
                _log.warning("Unknown preset '%s' on <%s>; using plain.", attributes.get("preset"), tag)
                preset = Dialect.PLAIN

        closing = re.compile(rf"^\s*</{tag}>\s*$")
        spec = PlaygroundSpec(len(found), preset, title=attributes.get("title"), start=index)
        cursor = index + 1
        while cursor < total and not closing.match(lines[cursor]):
            fenced = _read_fence(lines, cursor) if _FENCE_RE.match(lines[cursor]) else None
            if fenced is not None:
                spec.blocks.append(fenced[0])
                cursor = fenced[1]
            cursor += 1

        if cursor >= total:
            _log.warning("Unterminated <%s> starting on line %d left untouched.", tag, index + 1)
            index += 1
            continue
        spec.end = cursor
        found.append(spec)
        index = cursor + 1

    return found


def render_container(spec: PlaygroundSpec, files: FileSet, document: str) -> str:
    """Return the ``<div class="playground">`` markup for one playground."""
    attributes = [
        'class="playground"',
        f'data-preset="{escape(spec.preset.value)}"',
        f'data-files="{escape(files.to_json())}"',
    ]
    element_id = spec.element_id
    if element_id:
        attributes.insert(1, f'id="{escape(element_id)}"')
    title = f' title="{escape(spec.title)}"' if spec.title else ""
    return (
        f"<div {' '.join(attributes)}>"
        f'<iframe sandbox="{IFRAME_SANDBOX}"{title} srcdoc="{escape(document)}"></iframe>'
        "</div>"
    )


class _PlaygroundPreprocessor(Preprocessor):
    """Swap playground line spans for stashed HTML containers."""

    def __init__(
        self,
        md: Markdown,
        *,
        rendered: Mapping[int, tuple[FileSet, str]],
        renderer: PlaygroundRenderer | None,
    ) -> None:
        super().__init__(md)
        self._rendered = rendered
        self._renderer = renderer

    def _render(self, spec: PlaygroundSpec) -> str | None:
        payload = self._rendered.get(spec.index)
        if payload is None and self._renderer is not None:
            payload = self._renderer(spec)
        if payload is None:
            _log.warning("No rendering available for playground #%d; leaving source as is.", spec.index + 1)
            return None
        files, document = payload
        return render_container(spec, files, document)

    def run(self, lines: list[str]) -> list[str]:
        specs = scan_playgrounds(lines)
        if not specs:
            return lines

        result: list[str] = []
        cursor = 0
        for spec in specs:
            html = self._render(spec)
            if html is None:
                continue
            result.extend(lines[cursor : spec.start])
            result.extend(["", self.md.htmlStash.store(html), ""])
            cursor = spec.end + 1
        result.extend(lines[cursor:])
        return result


class PlaygroundExtension(Extension):
    """Register the playground preprocessor.

    ``rendered`` maps playground ordinals to prebuilt ``(FileSet, document)``
    pairs; ``renderer`` builds the ones missing from it on demand.
    """

    def __init__(
        self,
        *,
        rendered: Mapping[int, tuple[FileSet, str]] | None = None,
        renderer: PlaygroundRenderer | None = None,
        **kwargs: object,
    ) -> None:
        self.rendered = dict(rendered or {})
        self.renderer = renderer
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        processor = _PlaygroundPreprocessor(
            md,
            rendered=self.rendered,
            renderer=self.renderer,
        )
        md.preprocessors.register(processor, "playsmith_playgrounds", priority=27)


def makeExtension(**kwargs: object) -> PlaygroundExtension:  # pragma: no cover - API hook  # noqa: N802
    return PlaygroundExtension(**kwargs)


__all__ = [
    "IFRAME_SANDBOX",
    "PlaygroundExtension",
    "PlaygroundRenderer",
    "PlaygroundSpec",
    "collect_fenced_blocks",
    "makeExtension",
    "parse_attributes",
    "render_container",
    "scan_playgrounds",
]
