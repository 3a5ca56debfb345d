"""Artifact storage backends."""

from __future__ import annotations

from pathlib import Path

from mindmapsys.config import StorageConfig

from .base import ArtifactStore, StoredArtifact, new_artifact_id, validate_artifact_id
from .local import LocalArtifactStore
from .memory import InMemoryArtifactStore


def create_store(config: StorageConfig, *, base_path: Path | None = None) -> ArtifactStore:
    """Instantiate the configured backend; relative directories resolve against ``base_path``."""

    if config.backend == "memory":
        return InMemoryArtifactStore()

    output_dir = Path(config.output_dir).expanduser()
    if not output_dir.is_absolute() and base_path is not None:
        output_dir = Path(base_path) / output_dir
    store = LocalArtifactStore(output_dir)
    store.ensure_directory()
    return store


__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "LocalArtifactStore",
    "StoredArtifact",
    "create_store",
    "new_artifact_id",
    "validate_artifact_id",
]
