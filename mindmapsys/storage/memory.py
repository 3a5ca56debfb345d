"""In-memory artifact store for tests and ephemeral deployments."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Iterator

from mindmapsys.formats import ArtifactKind
from mindmapsys.errors import NotFound

from .base import ArtifactStore, StoredArtifact, validate_artifact_id


class InMemoryArtifactStore(ArtifactStore):
    """Thread-safe dictionary-backed store."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._items: dict[tuple[str, ArtifactKind], tuple[bytes, float]] = {}

    def put(self, artifact_id: str, kind: ArtifactKind, data: bytes) -> None:
        validate_artifact_id(artifact_id)
        with self._lock:
            self._items[(artifact_id, kind)] = (bytes(data), self._clock())

    def get(self, artifact_id: str, kind: ArtifactKind) -> bytes:
        validate_artifact_id(artifact_id)
        with self._lock:
            item = self._items.get((artifact_id, kind))
        if item is None:
            raise NotFound(f"Artifact '{artifact_id}' has no {kind.value} format.")
        return item[0]

    def exists(self, artifact_id: str, kind: ArtifactKind) -> bool:
        validate_artifact_id(artifact_id)
        with self._lock:
            return (artifact_id, kind) in self._items

    def delete(self, artifact_id: str, kind: ArtifactKind) -> bool:
        validate_artifact_id(artifact_id)
        with self._lock:
            return self._items.pop((artifact_id, kind), None) is not None

    def iter_entries(self) -> Iterator[StoredArtifact]:
        with self._lock:
            snapshot = list(self._items.items())
        for (artifact_id, kind), (_, modified_at) in snapshot:
            yield StoredArtifact(artifact_id=artifact_id, kind=kind, modified_at=modified_at)

    def touch(self, artifact_id: str, kind: ArtifactKind, modified_at: float) -> None:
        """Override the modification time of an existing entry."""
        with self._lock:
            data, _ = self._items[(artifact_id, kind)]
            self._items[(artifact_id, kind)] = (data, modified_at)

    def describe(self) -> str:
        return "memory"


__all__ = ["InMemoryArtifactStore"]
