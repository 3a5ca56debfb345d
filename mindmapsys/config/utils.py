"""Helper utilities for configuration handling."""

from __future__ import annotations

import os
from typing import Any, Mapping

from pydantic import BaseModel

_ENV_PREFIX = "env:"

# Environment variable -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "API_KEYS": ("access", "api_keys"),
    "API_RATE_LIMIT": ("access", "rate_limit"),
    "MAX_MARKDOWN_SIZE": ("generation", "max_markdown_size"),
    "MAX_NODES": ("generation", "max_nodes"),
    "ARTIFACT_TTL_SECONDS": ("sweeper", "ttl_seconds"),
    "SWEEP_INTERVAL_SECONDS": ("sweeper", "interval_seconds"),
    "OUTPUT_DIR": ("storage", "output_dir"),
}


def resolve_env_reference(value: str | None, *, required: bool = True) -> str | None:
    """Resolve values that reference environment variables.

    Accepts strings in the form ``"env:VAR_NAME"`` and returns the value from
    ``os.environ``. When ``required`` is ``True`` (default) and the variable is
    missing or empty, an :class:`EnvironmentError` is raised. Plain strings are
    returned unchanged, and ``None`` values are passed through.
    """

    if value is None:
        return None
    if not value.startswith(_ENV_PREFIX):
        return value

    var_name = value.split(":", 1)[1]
    resolved = os.getenv(var_name)
    if resolved:
        return resolved
    if required:
        raise EnvironmentError(f"Environment variable '{var_name}' is not set or empty")
    return None


def apply_env_overrides(config: BaseModel, environ: Mapping[str, str] | None = None) -> BaseModel:
    """Return a copy of ``config`` with recognised environment variables applied.

    Values are re-validated through the model, so a malformed override raises
    :class:`pydantic.ValidationError` just like a malformed file would.
    """

    environ = os.environ if environ is None else environ
    payload: dict[str, Any] = config.model_dump()
    applied: list[str] = []

    for var_name, (section, field) in _ENV_OVERRIDES.items():
        raw = environ.get(var_name)
        if raw is None or not raw.strip():
            continue
        value: Any = raw.strip()
        if field == "api_keys":
            value = [part.strip() for part in raw.split(",") if part.strip()]
        payload.setdefault(section, {})[field] = value
        applied.append(var_name)

    if not applied:
        return config
    return type(config).model_validate(payload)


__all__ = ["resolve_env_reference", "apply_env_overrides"]
