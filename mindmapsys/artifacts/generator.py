"""Concurrent generation of every artifact format for one request."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable

from loguru import logger

from mindmapsys.errors import MindmapError
from mindmapsys.formats import ArtifactKind
from mindmapsys.outline import OutlineNode
from mindmapsys.storage import ArtifactStore

from .models import ArtifactSet, GenerationRequest, GenerationResult
from .rendering import ArtifactRenderer, render_outline_json
from .transformer import TreeTransformer

_INTERNAL_ERROR = "internal_error"


class ArtifactGenerator:
    """Build and persist the interactive, preview and outline artifacts.

    Formats are produced as independent tasks over the same immutable outline
    and written to distinct store keys, so one failing format never affects
    the others.
    """

    def __init__(
        self,
        store: ArtifactStore,
        *,
        renderer: ArtifactRenderer | None = None,
        transformer: TreeTransformer | None = None,
        kinds: tuple[ArtifactKind, ...] = tuple(ArtifactKind),
    ) -> None:
        self.store = store
        self.renderer = renderer or ArtifactRenderer()
        self.transformer = transformer
        self.kinds = kinds
        self._builders: dict[ArtifactKind, Callable[[GenerationRequest, OutlineNode], Awaitable[bytes]]] = {
            ArtifactKind.INTERACTIVE: self._build_interactive,
            ArtifactKind.PREVIEW: self._build_preview,
            ArtifactKind.OUTLINE: self._build_outline,
        }

    async def generate(
        self,
        artifact_id: str,
        request: GenerationRequest,
        root: OutlineNode,
    ) -> GenerationResult:
        """Generate every format and wait until all of them have settled.

        The gather is shielded: if the caller is cancelled, the format tasks
        still run to completion because each written artifact stays valid.
        """

        created_at = datetime.now(timezone.utc)
        bound_logger = logger.bind(artifact_id=artifact_id)
        tasks = [asyncio.ensure_future(self._generate_one(artifact_id, kind, request, root)) for kind in self.kinds]
        outcomes = await asyncio.shield(asyncio.gather(*tasks))

        artifact_set = ArtifactSet(id=artifact_id, created_at=created_at)
        errors: dict[ArtifactKind, str] = {}
        for kind, error in outcomes:
            artifact_set.formats[kind] = error is None
            if error is not None:
                errors[kind] = error

        bound_logger.info(
            "Generated artifacts: available={}, failed={}",
            [kind.value for kind in artifact_set.available],
            {kind.value: reason for kind, reason in errors.items()},
        )
        return GenerationResult(artifact_set=artifact_set, title=root.title, errors=errors)

    async def _generate_one(
        self,
        artifact_id: str,
        kind: ArtifactKind,
        request: GenerationRequest,
        root: OutlineNode,
    ) -> tuple[ArtifactKind, str | None]:
        try:
            body = await self._builders[kind](request, root)
            await asyncio.to_thread(self.store.put, artifact_id, kind, body)
        except MindmapError as exc:
            logger.warning("Format {} for {} failed: {}", kind.value, artifact_id, exc)
            return kind, exc.reason
        except Exception:
            logger.exception("Unexpected failure generating format {} for {}", kind.value, artifact_id)
            return kind, _INTERNAL_ERROR
        return kind, None

    async def _build_interactive(self, request: GenerationRequest, root: OutlineNode) -> bytes:
        tree = None
        if self.transformer is not None:
            tree = await self.transformer.transform(request.raw_markdown)
        html = self.renderer.render_interactive(request.raw_markdown, title=root.title, tree=tree)
        return html.encode("utf-8")

    async def _build_preview(self, request: GenerationRequest, root: OutlineNode) -> bytes:
        return self.renderer.render_preview(root).encode("utf-8")

    async def _build_outline(self, request: GenerationRequest, root: OutlineNode) -> bytes:
        return render_outline_json(root).encode("utf-8")


__all__ = ["ArtifactGenerator"]
