"""Boundary to an external Markdown-to-tree transformer."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Sequence

from loguru import logger

from mindmapsys.config import RendererConfig
from mindmapsys.errors import ExternalRendererFailed


class TreeTransformer(ABC):
    """Turns Markdown into the ``{root, features}`` tree used by the viewer."""

    @abstractmethod
    async def transform(self, markdown: str) -> dict[str, Any]:
        """Return the transformed tree or raise :class:`ExternalRendererFailed`."""


class SubprocessTransformer(TreeTransformer):
    """Pipe Markdown to a command and read the tree as JSON from its stdout."""

    def __init__(self, command: Sequence[str], *, timeout_seconds: float = 5.0) -> None:
        if not command:
            raise ValueError("Transformer command must not be empty.")
        self.command = list(command)
        self.timeout_seconds = timeout_seconds

    async def transform(self, markdown: str) -> dict[str, Any]:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ExternalRendererFailed("External transformer could not be started.") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(markdown.encode("utf-8")),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ExternalRendererFailed(
                f"External transformer exceeded {self.timeout_seconds:g}s deadline."
            ) from exc

        if process.returncode != 0:
            logger.warning(
                "Transformer exited with code {}: {}",
                process.returncode,
                stderr.decode("utf-8", errors="replace").strip()[:500],
            )
            raise ExternalRendererFailed(f"External transformer exited with code {process.returncode}.")

        try:
            tree = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ExternalRendererFailed("External transformer returned invalid JSON.") from exc

        if not isinstance(tree, dict) or "root" not in tree:
            raise ExternalRendererFailed("External transformer output lacks a 'root' node.")
        return tree


def create_transformer(config: RendererConfig | None) -> TreeTransformer | None:
    """Instantiate the configured transformer, or ``None`` for client-side rendering."""

    if config is None or not config.command:
        return None
    return SubprocessTransformer(config.command, timeout_seconds=config.timeout_seconds)


__all__ = ["TreeTransformer", "SubprocessTransformer", "create_transformer"]
