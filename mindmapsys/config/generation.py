"""Artifact generation limits."""

from __future__ import annotations

from pydantic import Field, field_validator

from mindmapsys.config.base import BaseConfig


class GenerationConfig(BaseConfig):
    """Input limits and presentation defaults for artifact generation."""

    max_markdown_size: int = Field(500_000, ge=1, description="Maximum Markdown size in bytes")
    max_nodes: int = Field(500, ge=1, description="Maximum number of heading lines kept in the outline")
    max_title_length: int = Field(100, ge=1, description="Heading titles are truncated to this many characters")
    max_upload_size: int = Field(1024 * 1024, ge=1, description="Maximum uploaded file size in bytes")
    allowed_upload_extensions: list[str] = Field(
        default_factory=lambda: [".md", ".markdown", ".txt"],
        description="File extensions accepted by the upload endpoint",
    )
    default_title: str = Field("Mind Map", min_length=1, description="Root label when no title is supplied")
    preview_width: int = Field(800, ge=100, description="Width of the static preview image")
    preview_height: int = Field(600, ge=100, description="Height of the static preview image")

    @field_validator("allowed_upload_extensions")
    @classmethod
    def _normalise_extensions(cls, extensions: list[str]) -> list[str]:
        normalised = []
        for ext in extensions:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalised.append(ext if ext.startswith(".") else f".{ext}")
        return normalised


__all__ = ["GenerationConfig"]
