"""Configuration namespace for mindmapsys."""

from __future__ import annotations

from .access import AccessConfig
from .app import AppConfig
from .base import BaseConfig, load_config
from .generation import GenerationConfig
from .renderer import RendererConfig
from .storage import StorageConfig
from .sweeper import SweeperConfig
from .utils import apply_env_overrides, resolve_env_reference
from .web import WebConfig

__all__ = [
    "BaseConfig",
    "AppConfig",
    "load_config",
    "AccessConfig",
    "GenerationConfig",
    "RendererConfig",
    "StorageConfig",
    "SweeperConfig",
    "WebConfig",
    "apply_env_overrides",
    "resolve_env_reference",
]
