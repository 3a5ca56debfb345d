"""Heading outline extraction."""

from __future__ import annotations

from .parser import (
    DEFAULT_MAX_NODES,
    DEFAULT_MAX_TITLE_LENGTH,
    DEFAULT_ROOT_TITLE,
    OutlineNode,
    match_heading,
    parse_outline,
)

__all__ = [
    "DEFAULT_MAX_NODES",
    "DEFAULT_MAX_TITLE_LENGTH",
    "DEFAULT_ROOT_TITLE",
    "OutlineNode",
    "match_heading",
    "parse_outline",
]
