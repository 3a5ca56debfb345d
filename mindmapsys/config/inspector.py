"""Validation reports and field documentation for configuration files."""

from __future__ import annotations

from pathlib import Path
from types import UnionType
from typing import Any, Iterator, NamedTuple, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError
from pydantic.fields import FieldInfo

from .app import AppConfig
from .base import load_config

# Exception type -> (error type reported to the user, exit code). Order matters:
# PermissionError and FileNotFoundError are OSErrors, ValidationError is a ValueError.
_LOAD_FAILURES: tuple[tuple[type[Exception], str, int], ...] = (
    (FileNotFoundError, "missing_file", 2),
    (PermissionError, "permission_error", 2),
    (ValidationError, "validation_error", 3),
    (ValueError, "invalid_format", 1),
)
_HANDLED_FAILURES = tuple(exc_type for exc_type, _, _ in _LOAD_FAILURES)


class ConfigCheck(NamedTuple):
    """Outcome of :func:`check_config`; unpacks as ``(result, exit_code, config)``."""

    result: dict[str, Any]
    exit_code: int
    config: AppConfig | None


def check_config(path: Path, *, config_cls: type[AppConfig] = AppConfig) -> ConfigCheck:
    """Load ``path`` and describe either its warnings or why it is unusable.

    Exit codes: 0 valid, 1 unparsable TOML, 2 missing or unreadable file,
    3 schema validation failure.
    """

    try:
        config = load_config(config_cls, path)
    except _HANDLED_FAILURES as exc:
        error_type, exit_code = _classify(exc)
        error: dict[str, Any] = {"type": error_type, "message": str(exc)}
        if isinstance(exc, ValidationError):
            error["message"] = "Configuration validation failed"
            error["details"] = [
                {"loc": ".".join(str(part) for part in err["loc"]), "message": err["msg"], "type": err["type"]}
                for err in exc.errors()
            ]
        return ConfigCheck({"status": "error", "config_path": str(path), "error": error}, exit_code, None)

    result = {"status": "ok", "config_path": str(path), "warnings": collect_warnings(config)}
    return ConfigCheck(result, 0, config)


def collect_warnings(config: AppConfig) -> list[str]:
    """Flag settings that are valid but probably unintended in production."""

    warnings: list[str] = []
    access, sweeper = config.access, config.sweeper

    if {"dev-key", "test-key"} & set(access.api_keys):
        warnings.append("Development API keys (dev-key/test-key) are still accepted")
    if not access.api_keys:
        warnings.append("No API keys configured; every gated request will be rejected")

    if not sweeper.enabled:
        warnings.append("Sweeper is disabled; artifacts will accumulate until removed manually")
    elif sweeper.ttl_seconds < sweeper.interval_seconds and not sweeper.sweep_after_generation:
        warnings.append("'sweeper.ttl_seconds' is shorter than 'sweeper.interval_seconds'; artifacts outlive their TTL")

    if config.storage.backend == "memory":
        warnings.append("Memory storage backend loses all artifacts on restart")
    return warnings


def explain_config(*, config_cls: type[BaseModel] = AppConfig) -> list[dict[str, Any]]:
    """Flatten the model tree into one record per field, parents before children."""
    return list(_describe_fields(config_cls, prefix=""))


def _classify(exc: Exception) -> tuple[str, int]:
    for exc_type, error_type, exit_code in _LOAD_FAILURES:
        if isinstance(exc, exc_type):
            return error_type, exit_code
    raise TypeError(f"Unclassified configuration error: {exc!r}")  # pragma: no cover


def _describe_fields(model_cls: type[BaseModel], *, prefix: str) -> Iterator[dict[str, Any]]:
    for name, field in model_cls.model_fields.items():
        dotted = f"{prefix}{name}"
        yield {
            "name": dotted,
            "type": _type_name(field.annotation),
            "required": field.is_required(),
            "default": _default_of(field),
            "description": field.description or "",
        }
        nested = _nested_model(field.annotation)
        if nested is not None:
            model, marker = nested
            yield from _describe_fields(model, prefix=f"{dotted}{marker}.")


def _nested_model(annotation: Any) -> tuple[type[BaseModel], str] | None:
    """Return the model inside ``annotation`` and the path marker for containers."""

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation, ""
    origin, args = get_origin(annotation), get_args(annotation)
    if origin in (Union, UnionType):
        for arg in args:
            found = _nested_model(arg)
            if found is not None:
                return found
    elif origin in (list, tuple, set) and args:
        found = _nested_model(args[0])
        if found is not None:
            return found[0], "[]"
    elif origin is dict and len(args) == 2:
        found = _nested_model(args[1])
        if found is not None:
            return found[0], "{}"
    return None


def _type_name(annotation: Any) -> str:
    origin, args = get_origin(annotation), get_args(annotation)
    if origin is None:
        return annotation.__name__ if isinstance(annotation, type) else repr(annotation).replace("typing.", "")
    if origin in (Union, UnionType):
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1 and len(args) == 2:
            return f"Optional[{_type_name(members[0])}]"
        return f"Union[{', '.join(_type_name(arg) for arg in args)}]"
    name = getattr(origin, "__name__", repr(origin).replace("typing.", ""))
    return f"{name}[{', '.join(_type_name(arg) for arg in args)}]" if args else name


def _default_of(field: FieldInfo) -> Any:
    if field.default_factory is not None:
        return _jsonable(field.default_factory())
    if field.is_required():
        return None
    return _jsonable(field.default)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


__all__ = ["ConfigCheck", "check_config", "collect_warnings", "explain_config"]
