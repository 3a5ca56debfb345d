"""Loguru sink configuration."""

from __future__ import annotations

import sys
from contextlib import suppress
from pathlib import Path

from loguru import logger

_DEFAULT_HANDLER_ID = 0
_handler_ids: list[int] = []


def configure_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """Route logs to stderr at ``level`` and, optionally, to a rotating JSON file."""

    for handler_id in _handler_ids:
        logger.remove(handler_id)
    _handler_ids.clear()

    with suppress(ValueError):
        logger.remove(_DEFAULT_HANDLER_ID)
    _handler_ids.append(logger.add(sys.stderr, level=level.upper()))

    if log_dir is None:
        return
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        _handler_ids.append(
            logger.add(
                log_dir / "mindmapsys.log",
                rotation="5 MB",
                retention=5,
                enqueue=True,
                serialize=True,
                level=level.upper(),
            )
        )
    except OSError as exc:  # pragma: no cover - filesystem issues are environment-specific
        logger.warning("Failed to initialise file log sink in {}: {}", log_dir, exc)


__all__ = ["configure_logging"]
