"""Rendering helpers turning an outline into artifact bodies."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markupsafe import Markup

from mindmapsys.outline import OutlineNode

MARKMAP_BUNDLE_URL = (
    "https://cdn.jsdelivr.net/combine/npm/d3@6.7.0,npm/markmap-view@0.14.0,"
    "npm/markmap-lib@0.14.0/dist/browser/index.min.js"
)
PREVIEW_LABEL_LENGTH = 32

# Characters that could end a <script> element or a JS string early.
_SCRIPT_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

# Everything outside the XML 1.0 Char production.
_XML_INVALID_RE = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def embed_json(value: Any) -> Markup:
    """Serialise ``value`` as JSON safe to place inside a ``<script>`` element.

    The output never contains ``<``, ``>`` or ``&``, so no input can produce
    ``</script>`` or ``<!--`` and terminate the element.
    """

    encoded = json.dumps(value, ensure_ascii=False)
    for raw, escaped in _SCRIPT_ESCAPES.items():
        encoded = encoded.replace(raw, escaped)
    return Markup(encoded)


def xml_text(value: str) -> str:
    """Drop characters that cannot appear in an XML document at all."""
    return _XML_INVALID_RE.sub("", value)


def _templates_dir() -> Path:
    """Return the directory containing artifact templates."""
    return Path(__file__).resolve().parent / "templates"


def _build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_templates_dir())),
        autoescape=select_autoescape(enabled_extensions=("html", "svg"), default=True),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["embed_json"] = embed_json
    env.filters["xml_text"] = xml_text
    return env


@dataclass(frozen=True, slots=True)
class PreviewLabel:
    text: str
    x: float
    y: float
    anchor: str


class ArtifactRenderer:
    """Render interactive viewer pages and static preview images."""

    def __init__(self, *, preview_width: int = 800, preview_height: int = 600) -> None:
        self._env = _build_environment()
        self._interactive = self._env.get_template("interactive.html")
        self._preview = self._env.get_template("preview.svg")
        self.preview_width = preview_width
        self.preview_height = preview_height

    def render_interactive(self, markdown: str, title: str, tree: dict[str, Any] | None = None) -> str:
        """Viewer page embedding the raw Markdown, transformed in the browser.

        When ``tree`` is given (``{root, features}`` from an external
        transformer) the page renders it directly instead.
        """
        return self._interactive.render(
            title=title,
            markdown=markdown,
            tree=tree,
            bundle_url=MARKMAP_BUNDLE_URL,
        )

    def render_preview(self, root: OutlineNode) -> str:
        """Fixed-size SVG with the root label and a fan of lines to its children."""
        width, height = self.preview_width, self.preview_height
        cx, cy = width / 2, height / 2
        radius = min(width, height) * 0.36
        children = root.children
        spokes: list[PreviewLabel] = []

        for index, child in enumerate(children):
            angle = -math.pi / 2 + 2 * math.pi * index / len(children)
            x = cx + radius * math.cos(angle)
            y = cy + radius * math.sin(angle)
            if abs(x - cx) < 1:
                anchor = "middle"
            else:
                anchor = "start" if x > cx else "end"
            spokes.append(PreviewLabel(_shorten(child.title), round(x, 2), round(y, 2), anchor))

        return self._preview.render(
            width=width,
            height=height,
            center=PreviewLabel(_shorten(root.title), cx, cy, "middle"),
            spokes=spokes,
        )


def render_outline_json(root: OutlineNode) -> str:
    """Nested ``{"title", "children"}`` records for programmatic consumers."""
    return json.dumps(root.to_dict(), ensure_ascii=False, indent=2)


def _shorten(text: str, limit: int = PREVIEW_LABEL_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


__all__ = [
    "ArtifactRenderer",
    "MARKMAP_BUNDLE_URL",
    "PreviewLabel",
    "embed_json",
    "render_outline_json",
    "xml_text",
]
