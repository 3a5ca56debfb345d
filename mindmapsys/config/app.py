"""Application-level configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from mindmapsys.config.access import AccessConfig
from mindmapsys.config.base import BaseConfig
from mindmapsys.config.generation import GenerationConfig
from mindmapsys.config.renderer import RendererConfig
from mindmapsys.config.storage import StorageConfig
from mindmapsys.config.sweeper import SweeperConfig
from mindmapsys.config.web import WebConfig


class AppConfig(BaseConfig):
    """Top-level runtime configuration for the entire application."""

    logging_level: str = Field("INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    log_dir: Path | None = Field(None, description="Directory for the rotating JSON log file")

    access: AccessConfig = Field(default_factory=AccessConfig, description="API key and quota settings")
    generation: GenerationConfig = Field(default_factory=GenerationConfig, description="Input limits")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Artifact storage backend")
    sweeper: SweeperConfig = Field(default_factory=SweeperConfig, description="Artifact eviction schedule")
    web: WebConfig = Field(default_factory=WebConfig, description="HTTP server settings")
    renderer: RendererConfig = Field(default_factory=RendererConfig, description="External transformer")


__all__ = ["AppConfig"]
