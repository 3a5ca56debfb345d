"""Shared configuration base model and TOML loader."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T", bound="BaseConfig")


class BaseConfig(BaseModel):
    """Base class for every configuration section; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


def load_config(config_cls: type[T], path: Path) -> T:
    """Load ``path`` as TOML and validate it against ``config_cls``."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open("rb") as handle:
        try:
            raw = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Invalid TOML in {path}: {exc}") from exc

    return config_cls.model_validate(raw)


__all__ = ["BaseConfig", "load_config"]
