"""Filesystem-backed artifact store."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterator

from loguru import logger

from mindmapsys.formats import ArtifactKind
from mindmapsys.errors import InvalidId, NotFound, StorageWriteFailed

from .base import ArtifactStore, StoredArtifact, validate_artifact_id

_TEMP_PREFIX = ".tmp-"
# Stored artifacts are readable by other local users; NamedTemporaryFile starts at 0600.
ARTIFACT_FILE_MODE = 0o644


class LocalArtifactStore(ArtifactStore):
    """Stores each artifact as ``<root>/<id><extension>``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so readers never observe partial files.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def ensure_directory(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, artifact_id: str, kind: ArtifactKind) -> Path:
        validate_artifact_id(artifact_id)
        path = self.root / f"{artifact_id}{kind.extension}"
        if path.parent != self.root:
            raise InvalidId("Artifact id resolves outside the artifact directory.")
        return path

    def put(self, artifact_id: str, kind: ArtifactKind, data: bytes) -> None:
        target = self.path_for(artifact_id, kind)
        tmp_name: str | None = None
        try:
            self.ensure_directory()
            with tempfile.NamedTemporaryFile(
                mode="wb", dir=self.root, prefix=_TEMP_PREFIX, delete=False
            ) as handle:
                tmp_name = handle.name
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, ARTIFACT_FILE_MODE)
            os.replace(tmp_name, target)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            logger.warning("Writing {} artifact {} failed: {}", kind.value, artifact_id, exc)
            raise StorageWriteFailed(f"Failed to store the {kind.value} artifact.") from exc

    def get(self, artifact_id: str, kind: ArtifactKind) -> bytes:
        path = self.path_for(artifact_id, kind)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFound(f"Artifact '{artifact_id}' has no {kind.value} format.") from exc

    def exists(self, artifact_id: str, kind: ArtifactKind) -> bool:
        return self.path_for(artifact_id, kind).is_file()

    def delete(self, artifact_id: str, kind: ArtifactKind) -> bool:
        path = self.path_for(artifact_id, kind)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def iter_entries(self) -> Iterator[StoredArtifact]:
        if not self.root.exists():
            return
        with os.scandir(self.root) as entries:
            for entry in entries:
                if entry.name.startswith(_TEMP_PREFIX) or not entry.is_file():
                    continue
                stem, dot, suffix = entry.name.rpartition(".")
                if not dot:
                    continue
                kind = ArtifactKind.from_suffix(suffix)
                if kind is None or kind.extension != f".{suffix.lower()}":
                    continue
                try:
                    validate_artifact_id(stem)
                    modified_at = entry.stat().st_mtime
                except InvalidId:
                    continue
                except FileNotFoundError:
                    continue
                yield StoredArtifact(artifact_id=stem, kind=kind, modified_at=modified_at)

    def describe(self) -> str:
        return f"local:{self.root}"


__all__ = ["LocalArtifactStore"]
