from __future__ import annotations

import os
import re
import stat
from pathlib import Path

import pytest

from mindmapsys.config import StorageConfig
from mindmapsys.errors import InvalidId, NotFound, StorageWriteFailed
from mindmapsys.formats import ArtifactKind
from mindmapsys.storage import (
    InMemoryArtifactStore,
    LocalArtifactStore,
    create_store,
    new_artifact_id,
    validate_artifact_id,
)


@pytest.fixture(params=["local", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return InMemoryArtifactStore()
    local = LocalArtifactStore(tmp_path / "output")
    local.ensure_directory()
    return local


def test_put_get_exists_delete(store) -> None:
    store.put("abc-1", ArtifactKind.OUTLINE, b"{}")

    assert store.exists("abc-1", ArtifactKind.OUTLINE)
    assert not store.exists("abc-1", ArtifactKind.PREVIEW)
    assert store.get("abc-1", ArtifactKind.OUTLINE) == b"{}"

    assert store.delete("abc-1", ArtifactKind.OUTLINE) is True
    assert store.delete("abc-1", ArtifactKind.OUTLINE) is False
    with pytest.raises(NotFound):
        store.get("abc-1", ArtifactKind.OUTLINE)


def test_put_overwrites(store) -> None:
    store.put("abc", ArtifactKind.PREVIEW, b"old")
    store.put("abc", ArtifactKind.PREVIEW, b"new")

    assert store.get("abc", ArtifactKind.PREVIEW) == b"new"


@pytest.mark.parametrize(
    "bad_id",
    ["", "../etc/passwd", "..", "a/b", "a\\b", "a\x00b", "with space", "dot.ted", "-leading", "a" * 129, "abc\n"],
)
def test_invalid_ids_are_rejected_before_storage(store, bad_id: str) -> None:
    with pytest.raises(InvalidId):
        store.get(bad_id, ArtifactKind.OUTLINE)
    with pytest.raises(InvalidId):
        store.put(bad_id, ArtifactKind.OUTLINE, b"x")


def test_iter_entries_lists_every_format(store) -> None:
    store.put("one", ArtifactKind.INTERACTIVE, b"<html/>")
    store.put("one", ArtifactKind.OUTLINE, b"{}")
    store.put("two", ArtifactKind.PREVIEW, b"<svg/>")

    entries = {(entry.artifact_id, entry.kind) for entry in store.iter_entries()}

    assert entries == {
        ("one", ArtifactKind.INTERACTIVE),
        ("one", ArtifactKind.OUTLINE),
        ("two", ArtifactKind.PREVIEW),
    }


def test_local_store_layout_and_foreign_files(local_store: LocalArtifactStore) -> None:
    local_store.put("abc", ArtifactKind.INTERACTIVE, b"<html/>")
    (local_store.root / "notes.txt").write_text("ignore me")
    (local_store.root / ".tmp-partial").write_bytes(b"x")

    assert (local_store.root / "abc.html").read_bytes() == b"<html/>"
    assert [entry.artifact_id for entry in local_store.iter_entries()] == ["abc"]
    assert not [name for name in os.listdir(local_store.root) if name.startswith(".tmp-") and name != ".tmp-partial"]


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_local_store_files_are_world_readable(local_store: LocalArtifactStore) -> None:
    local_store.put("abc-1", ArtifactKind.PREVIEW, b"<svg/>")

    mode = stat.S_IMODE(local_store.path_for("abc-1", ArtifactKind.PREVIEW).stat().st_mode)
    assert mode == 0o644


def test_local_store_write_failure_is_redacted(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    store = LocalArtifactStore(blocker)

    with pytest.raises(StorageWriteFailed) as excinfo:
        store.put("abc", ArtifactKind.OUTLINE, b"{}")

    assert str(tmp_path) not in excinfo.value.message


def test_create_store_resolves_relative_dir(tmp_path: Path) -> None:
    store = create_store(StorageConfig(output_dir=Path("artifacts")), base_path=tmp_path)

    assert isinstance(store, LocalArtifactStore)
    assert store.root == (tmp_path / "artifacts").resolve()
    assert store.root.is_dir()
    assert isinstance(create_store(StorageConfig(backend="memory")), InMemoryArtifactStore)


def test_new_artifact_id_format() -> None:
    artifact_id = new_artifact_id(now=1_700_000_000.123)

    assert re.fullmatch(r"mindmap-1700000000123-[0-9a-f]{8}", artifact_id)
    assert validate_artifact_id(artifact_id) == artifact_id
    assert new_artifact_id() != new_artifact_id()
