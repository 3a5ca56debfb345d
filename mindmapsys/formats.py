"""Artifact formats and their file conventions."""

from __future__ import annotations

from enum import Enum


class ArtifactKind(str, Enum):
    """The formats generated for every request."""

    INTERACTIVE = "interactive"
    PREVIEW = "preview"
    OUTLINE = "outline"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @classmethod
    def from_suffix(cls, suffix: str) -> "ArtifactKind | None":
        """Map a file suffix (``.svg``) or kind name (``.preview``) to a kind."""
        suffix = suffix.lower().lstrip(".")
        for kind in cls:
            if suffix in (kind.value, kind.extension.lstrip(".")):
                return kind
        return None


_EXTENSIONS: dict[ArtifactKind, str] = {
    ArtifactKind.INTERACTIVE: ".html",
    ArtifactKind.PREVIEW: ".svg",
    ArtifactKind.OUTLINE: ".json",
}

_CONTENT_TYPES: dict[ArtifactKind, str] = {
    ArtifactKind.INTERACTIVE: "text/html; charset=utf-8",
    ArtifactKind.PREVIEW: "image/svg+xml",
    ArtifactKind.OUTLINE: "application/json",
}


__all__ = ["ArtifactKind"]
