"""External renderer configuration."""

from __future__ import annotations

from pydantic import Field

from mindmapsys.config.base import BaseConfig


class RendererConfig(BaseConfig):
    """Optional external Markdown-to-tree transformer."""

    command: list[str] | None = Field(
        None,
        description="Command reading Markdown on stdin and printing {root, features} JSON on stdout",
    )
    timeout_seconds: float = Field(5.0, gt=0, description="Deadline for a single transformer call")


__all__ = ["RendererConfig"]
