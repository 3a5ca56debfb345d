"""Artifact storage configuration models."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field

from mindmapsys.config.base import BaseConfig


class StorageConfig(BaseConfig):
    """Where generated artifacts are kept."""

    backend: Literal["local", "memory"] = Field("local", description="Storage backend for artifacts")
    output_dir: Path = Field(Path("./output"), description="Artifact directory for the local backend")


__all__ = ["StorageConfig"]
