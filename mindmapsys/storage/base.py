"""Key-value interface for artifact bytes."""

from __future__ import annotations

import re
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator

from mindmapsys.formats import ArtifactKind
from mindmapsys.errors import InvalidId

_ID_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]{0,127}")
_FORBIDDEN_SEQUENCES = ("..", "/", "\\", "\x00")


@dataclass(frozen=True, slots=True)
class StoredArtifact:
    """One stored ``(id, kind)`` entry and its last-modified time (epoch seconds)."""

    artifact_id: str
    kind: ArtifactKind
    modified_at: float


def validate_artifact_id(artifact_id: str) -> str:
    """Return ``artifact_id`` unchanged or raise :class:`InvalidId`."""

    if not isinstance(artifact_id, str) or not artifact_id:
        raise InvalidId("Artifact id must be a non-empty string.")
    if any(seq in artifact_id for seq in _FORBIDDEN_SEQUENCES):
        raise InvalidId("Artifact id must not contain path separators or '..'.")
    if not _ID_PATTERN.fullmatch(artifact_id):
        raise InvalidId("Artifact id contains unsupported characters.")
    return artifact_id


def new_artifact_id(prefix: str = "mindmap", *, now: float | None = None) -> str:
    """Timestamp plus random suffix, e.g. ``mindmap-1700000000000-1a2b3c4d``."""

    millis = int((time.time() if now is None else now) * 1000)
    return f"{prefix}-{millis}-{secrets.token_hex(4)}"


class ArtifactStore(ABC):
    """Persist and retrieve artifact bytes keyed by ``(id, kind)``.

    Implementations must validate ids before touching their backing storage and
    must make a successful ``put`` visible atomically.
    """

    @abstractmethod
    def put(self, artifact_id: str, kind: ArtifactKind, data: bytes) -> None:
        """Store ``data``; raise :class:`StorageWriteFailed` on I/O errors."""

    @abstractmethod
    def get(self, artifact_id: str, kind: ArtifactKind) -> bytes:
        """Return stored bytes; raise :class:`NotFound` when absent."""

    @abstractmethod
    def exists(self, artifact_id: str, kind: ArtifactKind) -> bool:
        """Whether the ``(id, kind)`` entry is present."""

    @abstractmethod
    def delete(self, artifact_id: str, kind: ArtifactKind) -> bool:
        """Remove an entry; return ``False`` when it was already gone."""

    @abstractmethod
    def iter_entries(self) -> Iterator[StoredArtifact]:
        """Yield a snapshot of stored entries; entries created meanwhile may be skipped."""

    def describe(self) -> str:
        return type(self).__name__


__all__ = [
    "ArtifactStore",
    "StoredArtifact",
    "new_artifact_id",
    "validate_artifact_id",
]
