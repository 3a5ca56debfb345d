"""Wiring of the store, pipeline, gate and sweeper from one configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from mindmapsys.artifacts import ConversionPipeline
from mindmapsys.config import AppConfig
from mindmapsys.gate import AccessGate
from mindmapsys.storage import ArtifactStore, create_store
from mindmapsys.sweeper import SweeperService


@dataclass(slots=True)
class Services:
    """Long-lived components shared by the CLI and the API server."""

    config: AppConfig
    store: ArtifactStore
    pipeline: ConversionPipeline
    gate: AccessGate
    sweeper: SweeperService


def build_services(config: AppConfig, *, base_path: Path | None = None, dry_run: bool = False) -> Services:
    store = create_store(config.storage, base_path=base_path)
    logger.info("Artifact store: {}", store.describe())

    pipeline = ConversionPipeline.from_config(config, store)
    sweeper = SweeperService(store, config.sweeper, dry_run=dry_run)
    pipeline.add_post_generation_hook(sweeper.request_sweep)
    gate = AccessGate(config.access)
    return Services(config=config, store=store, pipeline=pipeline, gate=gate, sweeper=sweeper)


__all__ = ["Services", "build_services"]
