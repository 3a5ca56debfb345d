"""High-level orchestration: validate, parse once, generate, store."""

from __future__ import annotations

from pathlib import PurePath
from typing import Callable

from loguru import logger

from mindmapsys.config import AppConfig, GenerationConfig
from mindmapsys.errors import GenerationFailed, InputTooLarge, InvalidInput
from mindmapsys.formats import ArtifactKind
from mindmapsys.outline import OutlineNode, parse_outline
from mindmapsys.storage import ArtifactStore, new_artifact_id

from .generator import ArtifactGenerator
from .models import GenerationRequest, GenerationResult
from .rendering import ArtifactRenderer
from .transformer import TreeTransformer, create_transformer


class ConversionPipeline:
    """Wires the outline parser, artifact generator and store together."""

    def __init__(
        self,
        store: ArtifactStore,
        *,
        generation: GenerationConfig | None = None,
        transformer: TreeTransformer | None = None,
        id_factory: Callable[[], str] = new_artifact_id,
    ) -> None:
        self.store = store
        self.settings = generation or GenerationConfig()
        self.generator = ArtifactGenerator(
            store,
            renderer=ArtifactRenderer(
                preview_width=self.settings.preview_width,
                preview_height=self.settings.preview_height,
            ),
            transformer=transformer,
        )
        self._id_factory = id_factory
        self._after_generation: list[Callable[[GenerationResult], None]] = []

    @classmethod
    def from_config(cls, config: AppConfig, store: ArtifactStore) -> "ConversionPipeline":
        return cls(
            store,
            generation=config.generation,
            transformer=create_transformer(config.renderer),
        )

    def add_post_generation_hook(self, hook: Callable[[GenerationResult], None]) -> None:
        """Register a callback run after every generation that produced artifacts."""
        self._after_generation.append(hook)

    def build_request(self, markdown: object, title: object = None) -> GenerationRequest:
        """Validate raw input and return a :class:`GenerationRequest`."""

        if not isinstance(markdown, str) or not markdown.strip():
            raise InvalidInput("Missing markdown content.")
        if title is not None and not isinstance(title, str):
            raise InvalidInput("Title must be a string.")
        try:
            size = len(markdown.encode("utf-8"))
        except UnicodeEncodeError as exc:
            raise InvalidInput("Markdown is not valid Unicode text.") from exc
        if size > self.settings.max_markdown_size:
            raise InputTooLarge(
                f"Markdown is {size} bytes; the limit is {self.settings.max_markdown_size} bytes."
            )
        clean_title = title.strip() if isinstance(title, str) and title.strip() else None
        return GenerationRequest(raw_markdown=markdown, title=clean_title)

    def build_upload_request(self, filename: str | None, data: bytes) -> GenerationRequest:
        """Validate an uploaded file and decode it as UTF-8 Markdown."""

        if not filename:
            raise InvalidInput("No file uploaded.")
        extension = PurePath(filename).suffix.lower()
        if extension not in self.settings.allowed_upload_extensions:
            allowed = ", ".join(self.settings.allowed_upload_extensions)
            raise InvalidInput(f"Unsupported file type; upload one of: {allowed}.")
        if len(data) > self.settings.max_upload_size:
            raise InputTooLarge(f"Uploaded file exceeds {self.settings.max_upload_size} bytes.")
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InvalidInput("Uploaded file is not valid UTF-8 text.") from exc
        return self.build_request(text, title=PurePath(filename).name)

    def parse(self, request: GenerationRequest) -> OutlineNode:
        return parse_outline(
            request.raw_markdown,
            root_title=request.title or self.settings.default_title,
            max_nodes=self.settings.max_nodes,
            max_title_length=self.settings.max_title_length,
        )

    async def convert(self, request: GenerationRequest) -> GenerationResult:
        """Generate all formats for ``request`` under a fresh identifier."""

        root = self.parse(request)
        artifact_id = self._id_factory()
        logger.info("Converting markdown into {} ({} headings)", artifact_id, root.node_count)

        result = await self.generator.generate(artifact_id, request, root)
        if not result.succeeded:
            raise GenerationFailed("No artifact format could be generated.")

        for hook in self._after_generation:
            try:
                hook(result)
            except Exception:
                logger.exception("Post-generation hook {} failed", getattr(hook, "__name__", hook))
        return result

    def fetch(self, artifact_id: str, kind: ArtifactKind) -> bytes:
        return self.store.get(artifact_id, kind)


__all__ = ["ConversionPipeline"]
