"""Data models shared by the artifact generator, store and web layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from mindmapsys.formats import ArtifactKind


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Raw Markdown plus an optional title used as the root label."""

    raw_markdown: str
    title: str | None = None


@dataclass(slots=True)
class ArtifactSet:
    """Identifier and per-format presence of one generation."""

    id: str
    created_at: datetime
    formats: dict[ArtifactKind, bool] = field(default_factory=dict)

    @property
    def available(self) -> list[ArtifactKind]:
        return [kind for kind in ArtifactKind if self.formats.get(kind)]


@dataclass(slots=True)
class GenerationResult:
    """Outcome of one generation: the artifact set plus per-format failures."""

    artifact_set: ArtifactSet
    title: str
    errors: dict[ArtifactKind, str] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.artifact_set.id

    @property
    def succeeded(self) -> bool:
        return bool(self.artifact_set.available)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "created_at": self.artifact_set.created_at.isoformat().replace("+00:00", "Z"),
            "formats": {kind.value: bool(self.artifact_set.formats.get(kind)) for kind in ArtifactKind},
            "errors": {kind.value: reason for kind, reason in self.errors.items()},
        }


__all__ = ["ArtifactKind", "ArtifactSet", "GenerationRequest", "GenerationResult"]
