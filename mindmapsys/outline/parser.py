"""Heading outline extraction from raw Markdown text."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator

DEFAULT_MAX_NODES = 500
DEFAULT_MAX_TITLE_LENGTH = 100
DEFAULT_ROOT_TITLE = "Mind Map"

_HEADING_RE = re.compile(r"^(#+)\s+(.*)$")


@dataclass(frozen=True, slots=True)
class OutlineNode:
    """One heading in the outline; the root is synthetic with depth 0."""

    title: str
    depth: int
    children: tuple["OutlineNode", ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialise as nested ``{"title", "children"}`` records."""
        return {"title": self.title, "children": [child.to_dict() for child in self.children]}

    def iter_nodes(self) -> Iterator["OutlineNode"]:
        """Yield every heading node in document order, excluding the root."""
        for child in self.children:
            yield child
            yield from child.iter_nodes()

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())


@dataclass(slots=True)
class _PendingNode:
    title: str
    depth: int
    children: list["_PendingNode"] = field(default_factory=list)

    def freeze(self) -> OutlineNode:
        return OutlineNode(
            title=self.title,
            depth=self.depth,
            children=tuple(child.freeze() for child in self.children),
        )


def match_heading(line: str, *, max_title_length: int = DEFAULT_MAX_TITLE_LENGTH) -> tuple[int, str] | None:
    """Return ``(level, title)`` when ``line`` is an ATX heading, else ``None``.

    Headings whose text is empty after trimming are ignored.
    """

    match = _HEADING_RE.match(line)
    if match is None:
        return None
    title = match.group(2).strip()
    if not title:
        return None
    return len(match.group(1)), title[:max_title_length]


def parse_outline(
    text: str,
    *,
    root_title: str = DEFAULT_ROOT_TITLE,
    max_nodes: int = DEFAULT_MAX_NODES,
    max_title_length: int = DEFAULT_MAX_TITLE_LENGTH,
) -> OutlineNode:
    """Build the heading tree of ``text``.

    Lines are scanned in order and only ATX headings (``#`` runs followed by
    whitespace) are considered. A stack of open nodes keeps nesting correct
    when levels are skipped: a ``###`` directly after a ``#`` becomes a child
    of the ``#``. Headings beyond ``max_nodes`` are dropped silently.
    """

    root = _PendingNode(title=root_title[:max_title_length], depth=0)
    stack: list[_PendingNode] = [root]
    consumed = 0

    for line in text.splitlines():
        if consumed >= max_nodes:
            break
        heading = match_heading(line, max_title_length=max_title_length)
        if heading is None:
            continue
        level, title = heading
        consumed += 1

        while stack[-1].depth >= level:
            stack.pop()
        node = _PendingNode(title=title, depth=level)
        stack[-1].children.append(node)
        stack.append(node)

    return root.freeze()


__all__ = [
    "DEFAULT_MAX_NODES",
    "DEFAULT_MAX_TITLE_LENGTH",
    "DEFAULT_ROOT_TITLE",
    "OutlineNode",
    "match_heading",
    "parse_outline",
]
