"""Command line interface for the mindmap artifact service."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
import uvicorn
from loguru import logger

from .config import AppConfig, apply_env_overrides, load_config
from .config.inspector import check_config, explain_config
from .errors import MindmapError
from .log import configure_logging
from .outline import parse_outline
from .runtime import Services, build_services
from .web import create_app


@dataclass(slots=True)
class CLIState:
    """Holds shared state between Typer commands."""

    config_path: Path
    _config: AppConfig | None = None

    def ensure_config(self) -> AppConfig:
        if self._config is None:
            logger.info("Loading configuration from {}", self.config_path)
            self._config = apply_env_overrides(load_config(AppConfig, self.config_path))
        return self._config

    @property
    def base_path(self) -> Path:
        return self.config_path.parent


app = typer.Typer(help="Mindmap artifact service helpers")
config_app = typer.Typer(help="Validate and document configuration files")
app.add_typer(config_app, name="config")


def _default_config_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    return repo_root / "config" / "example.toml"


def _normalize_format(value: str) -> str:
    return value.lower()


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover - defensive guard
        raise RuntimeError("CLI context is not initialised")
    return state


def _exit(code: int) -> None:
    raise typer.Exit(code)


def _services(state: CLIState, *, dry_run: bool = False, output_dir: Path | None = None) -> Services:
    config = state.ensure_config()
    if output_dir is not None:
        storage = config.storage.model_copy(update={"backend": "local", "output_dir": output_dir.resolve()})
        config = config.model_copy(update={"storage": storage})
    return build_services(config, base_path=state.base_path, dry_run=dry_run)


def _read_markdown(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        logger.error("Markdown file not found: {}", path)
    except UnicodeDecodeError:
        logger.error("Markdown file is not valid UTF-8: {}", path)
    _exit(1)
    return ""  # pragma: no cover - _exit always raises


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(
        _default_config_path(),
        help="Path to the TOML configuration file",
    ),
) -> None:
    """Initialise CLI state."""

    ctx.obj = CLIState(config_path=config.resolve())
    if ctx.invoked_subcommand is None:
        logger.warning("No command provided. Try 'status' or 'serve --dry-run'.")
        _exit(0)


@app.command(help="Show configuration and subsystem status")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    services = _services(state, dry_run=True)
    _report_system_status(services)


@app.command(help="Run the sweeper and API server")
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Host to bind the API server to (defaults to web.host)"),
    port: int | None = typer.Option(None, help="Port to bind the API server to (defaults to web.port)"),
    dry_run: bool = typer.Option(
        False,
        help="Set up the sweeper and report status without running the server",
    ),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    services = _services(state, dry_run=dry_run)
    services.sweeper.setup_jobs()

    if dry_run:
        logger.info("[Dry Run] Server will not be started.")
        return

    configure_logging(config.logging_level, _resolve_log_dir(state, config))

    app_instance = create_app(services.pipeline, services.gate, services.sweeper, config)

    @app_instance.on_event("startup")
    async def startup_event() -> None:
        logger.info("Application startup...")
        services.sweeper.start()

    @app_instance.on_event("shutdown")
    async def shutdown_event() -> None:
        logger.info("Application shutdown...")
        services.sweeper.shutdown()

    uvicorn.run(app_instance, host=host or config.web.host, port=port or config.web.port)


@app.command(help="Generate all artifacts for a Markdown file")
def convert(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Markdown file to convert"),
    title: str | None = typer.Option(None, help="Root label (defaults to the file name)"),
    output_dir: Path | None = typer.Option(None, help="Write artifacts here instead of storage.output_dir"),
) -> None:
    state = _get_state(ctx)
    services = _services(state, output_dir=output_dir)
    markdown = _read_markdown(path)

    try:
        request = services.pipeline.build_request(markdown, title or path.name)
        result = asyncio.run(services.pipeline.convert(request))
    except MindmapError as exc:
        logger.error("Conversion failed ({}): {}", exc.reason, exc.message)
        _exit(1)
        return

    for kind, reason in result.errors.items():
        logger.warning("Format {} failed: {}", kind.value, reason)
    logger.info("Artifacts stored under id {}", result.id)
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@app.command(help="Print the heading outline of a Markdown file as JSON")
def outline(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Markdown file to parse"),
    title: str | None = typer.Option(None, help="Root label (defaults to generation.default_title)"),
) -> None:
    state = _get_state(ctx)
    settings = state.ensure_config().generation
    markdown = _read_markdown(path)

    root = parse_outline(
        markdown,
        root_title=title or settings.default_title,
        max_nodes=settings.max_nodes,
        max_title_length=settings.max_title_length,
    )
    typer.echo(json.dumps(root.to_dict(), indent=2, ensure_ascii=False))


@app.command(help="Delete artifacts older than the configured TTL once")
def sweep(
    ctx: typer.Context,
    ttl_seconds: float | None = typer.Option(None, "--ttl-seconds", min=0.0, help="Override sweeper.ttl_seconds"),
    dry_run: bool = typer.Option(False, help="List expired artifacts without deleting them"),
) -> None:
    state = _get_state(ctx)
    services = _services(state, dry_run=dry_run)

    report = services.sweeper.sweep_once(ttl_seconds=ttl_seconds)
    logger.info(
        "Sweep complete: scanned={}, removed={}, errors={}",
        report.scanned,
        report.removed,
        report.errors,
    )
    typer.echo(json.dumps({"scanned": report.scanned, "removed": report.removed, "errors": report.errors}))
    if report.errors:
        _exit(1)


_FORMAT_OPTION_HELP = "Output format: text (log lines) or json (stdout)"


@config_app.command(help="Validate the configuration file")
def check(
    ctx: typer.Context,
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text", "--format", case_sensitive=False, help=_FORMAT_OPTION_HELP, callback=_normalize_format
    ),
) -> None:
    state = _get_state(ctx)
    report = check_config(state.config_path)

    if format == "json":
        _echo_json(report.result)
    elif report.config is not None:
        logger.info("Configuration OK: {}", report.result["config_path"])
        for warning in report.result["warnings"]:
            logger.warning(warning)
    else:
        _log_config_error(report.result)
    _exit(report.exit_code)


@config_app.command(help="Describe available configuration fields")
def explain(
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text", "--format", case_sensitive=False, help=_FORMAT_OPTION_HELP, callback=_normalize_format
    ),
) -> None:
    fields = explain_config()
    if format == "json":
        _echo_json({"fields": fields})
        return

    logger.info("Configuration schema ({} fields):", len(fields))
    for entry in fields:
        logger.info(
            "  - {name}: type={type}, required={required}, default={default}, description={description}",
            name=entry["name"],
            type=entry["type"],
            required="yes" if entry["required"] else "no",
            default=_render_default(entry["default"]),
            description=entry["description"] or "(no description)",
        )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _log_config_error(result: dict[str, Any]) -> None:
    error = result["error"]
    logger.error("Configuration error ({}) for {}: {}", error["type"], result["config_path"], error["message"])
    for detail in error.get("details", []):
        logger.error("  - {}: {} ({})", detail["loc"] or "<root>", detail["message"], detail["type"])


def _render_default(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return "None" if value is None else str(value)


def _resolve_log_dir(state: CLIState, config: AppConfig) -> Path | None:
    if config.log_dir is None:
        return None
    if config.log_dir.is_absolute():
        return config.log_dir
    return (state.base_path / config.log_dir).resolve()


def _report_system_status(services: Services) -> None:
    """Print the effective configuration and store state."""
    config = services.config
    logger.info("=== General Configuration ===")
    logger.info("Logging level: {}", config.logging_level)
    logger.info("Log dir: {}", config.log_dir or "(stderr only)")

    logger.info("=== Access Gate ===")
    logger.info("API keys configured: {}", len(config.access.api_keys))
    logger.info("Rate limit: {} requests per {}s", config.access.rate_limit, config.access.window_seconds)
    logger.info("Public paths: {}", ", ".join(config.access.public_paths))

    logger.info("=== Generation ===")
    gen = config.generation
    logger.info("Max markdown size: {} bytes, max nodes: {}", gen.max_markdown_size, gen.max_nodes)
    logger.info("Upload extensions: {}", ", ".join(gen.allowed_upload_extensions))
    if config.renderer.command:
        logger.info(
            "External transformer: {} (timeout={}s)",
            " ".join(config.renderer.command),
            config.renderer.timeout_seconds,
        )
    else:
        logger.info("External transformer: not configured")

    logger.info("=== Storage ===")
    logger.info("Backend: {}", services.store.describe())
    entries = list(services.store.iter_entries())
    logger.info("Stored artifacts: {} files, {} ids", len(entries), len({entry.artifact_id for entry in entries}))

    logger.info("=== Sweeper ===")
    logger.info("Enabled: {}", config.sweeper.enabled)
    logger.info("TTL: {}s, interval: {}s", config.sweeper.ttl_seconds, config.sweeper.interval_seconds)
    logger.info("Sweep after generation: {}", config.sweeper.sweep_after_generation)


def main(argv: list[str] | None = None) -> int:
    """Entry point compatible with setuptools console scripts."""

    try:
        result = app(args=argv, standalone_mode=False)
    except typer.Exit as exc:  # pragma: no cover - Typer translates exit codes
        return exc.exit_code
    if isinstance(result, int):
        return result
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
