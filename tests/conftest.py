"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from mindmapsys.artifacts import ConversionPipeline  # noqa: E402
from mindmapsys.storage import InMemoryArtifactStore, LocalArtifactStore  # noqa: E402


class FakeClock:
    """Manually advanced clock returning seconds as a float."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture()
def local_store(tmp_path: Path) -> LocalArtifactStore:
    store = LocalArtifactStore(tmp_path / "output")
    store.ensure_directory()
    return store


@pytest.fixture()
def pipeline(memory_store: InMemoryArtifactStore) -> ConversionPipeline:
    return ConversionPipeline(memory_store)


@pytest.fixture()
def log_capture(capsys: pytest.CaptureFixture[str]) -> Iterator[None]:
    """Temporarily route Loguru output to the stderr that ``capsys`` reads."""
    handler_id = logger.add(sys.stderr, level="DEBUG")
    try:
        yield
    finally:
        logger.remove(handler_id)
