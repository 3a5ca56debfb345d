"""FastAPI application factory and routing definitions."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger

from mindmapsys import __version__
from mindmapsys.artifacts import ConversionPipeline, GenerationResult
from mindmapsys.config import AppConfig
from mindmapsys.errors import InvalidId, InvalidInput, MindmapError, NotFound
from mindmapsys.formats import ArtifactKind
from mindmapsys.gate import AccessGate
from mindmapsys.storage import validate_artifact_id
from mindmapsys.sweeper import SweeperService

_UNSAFE_FILENAME_PARTS = ("..", "/", "\\")


def create_app(
    pipeline: ConversionPipeline,
    gate: AccessGate,
    sweeper: SweeperService | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    """Creates the API application around an already wired pipeline and gate."""

    config = config or AppConfig()
    header_name = gate.config.header_name
    query_param = gate.config.query_param
    max_upload_size = pipeline.settings.max_upload_size

    app = FastAPI(
        title=config.web.title,
        description="Convert Markdown outlines into interactive mind maps, previews and outline documents.",
        version=__version__,
    )

    @app.middleware("http")
    async def access_gate(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        credential = request.headers.get(header_name) or request.query_params.get(query_param)
        try:
            gate.enforce(credential, request.url.path)
            return await call_next(request)
        except MindmapError as exc:
            return _error_response(exc)
        except Exception:
            logger.exception("Unhandled error while serving {} {}", request.method, request.url.path)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "internal_error", "message": "Internal server error."},
            )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MindmapError)
    async def handle_mindmap_error(request: Request, exc: MindmapError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(InvalidInput("Request validation failed."))

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {
            "name": config.web.title,
            "version": __version__,
            "endpoints": ["/convert", "/upload", "/artifact/{id}.{ext}", "/health"],
        }

    @app.get("/health", summary="Health Check", tags=["Monitoring"])
    async def health_check() -> dict[str, str]:
        """Check if the API is running."""
        return {"status": "ok", "time": _utc_now()}

    @app.post("/convert", summary="Generate artifacts from Markdown text", tags=["Artifacts"])
    @app.post("/generate", include_in_schema=False)
    @app.post("/api/v1/generate", include_in_schema=False)
    async def convert(request: Request) -> dict[str, Any]:
        payload = await _read_json_object(request)
        generation_request = pipeline.build_request(payload.get("markdown"), payload.get("title"))
        result = await pipeline.convert(generation_request)
        return _result_payload(result, request)

    @app.post("/upload", summary="Generate artifacts from an uploaded Markdown file", tags=["Artifacts"])
    @app.post("/api/v1/upload", include_in_schema=False)
    async def upload(request: Request, file: UploadFile | None = File(None)) -> dict[str, Any]:
        if file is None:
            raise InvalidInput("No file uploaded.")
        try:
            data = await file.read(max_upload_size + 1)
        finally:
            await file.close()
        generation_request = pipeline.build_upload_request(file.filename, data)
        result = await pipeline.convert(generation_request)
        return _result_payload(result, request)

    @app.get("/artifact/{filename:path}", summary="Fetch one generated artifact", tags=["Artifacts"])
    @app.get("/output/{filename:path}", include_in_schema=False)
    @app.get("/api/file/{filename:path}", include_in_schema=False)
    def get_artifact(filename: str) -> Response:
        artifact_id, kind = parse_artifact_filename(filename)
        data = pipeline.fetch(artifact_id, kind)
        headers = {}
        if kind is ArtifactKind.OUTLINE:
            headers["Content-Disposition"] = f'attachment; filename="{artifact_id}{kind.extension}"'
        return Response(content=data, media_type=kind.content_type, headers=headers)

    @app.get("/metrics", response_class=PlainTextResponse, include_in_schema=False)
    async def metrics() -> PlainTextResponse:
        lines = [
            "# HELP access_tracked_credentials Credentials with a live rate window.",
            "# TYPE access_tracked_credentials gauge",
            f"access_tracked_credentials {len(gate.windows)}",
        ]
        payload = "\n".join(lines) + "\n"
        if sweeper is not None:
            payload += sweeper.export_metrics()
        return PlainTextResponse(payload, media_type="text/plain; version=0.0.4")

    if sweeper is not None:

        @app.get("/sweeper", summary="Sweeper status", tags=["Maintenance"])
        async def sweeper_status() -> dict[str, Any]:
            return sweeper.status()

        @app.post("/sweeper/run", summary="Run an eviction sweep now", tags=["Maintenance"])
        async def run_sweep() -> dict[str, Any]:
            logger.info("Manual sweep requested.")
            if sweeper.trigger():
                return {"status": "scheduled", "message": "Sweep has been scheduled to run."}
            report = await asyncio.to_thread(sweeper.sweep_once)
            return {
                "status": "skipped" if report.skipped else "completed",
                "scanned": report.scanned,
                "removed": report.removed,
                "errors": report.errors,
            }

    return app


def parse_artifact_filename(filename: str) -> tuple[str, ArtifactKind]:
    """Split ``<id>.<ext>`` and validate both parts before any storage access."""

    if any(part in filename for part in _UNSAFE_FILENAME_PARTS):
        raise InvalidId("Invalid artifact name.")
    artifact_id, dot, suffix = filename.rpartition(".")
    if not dot or not artifact_id:
        raise NotFound("Unknown artifact format.")
    kind = ArtifactKind.from_suffix(suffix)
    if kind is None:
        raise NotFound(f"Unknown artifact format '{suffix}'.")
    validate_artifact_id(artifact_id)
    return artifact_id, kind


async def _read_json_object(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InvalidInput("Request body must be valid JSON.") from exc
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object.")
    return payload


def _result_payload(result: GenerationResult, request: Request) -> dict[str, Any]:
    base_url = str(request.base_url).rstrip("/")
    links: dict[str, str | None] = {}
    urls: dict[str, str | None] = {}
    for kind in ArtifactKind:
        if result.artifact_set.formats.get(kind):
            link = f"/artifact/{result.id}{kind.extension}"
            links[kind.value] = link
            urls[kind.value] = f"{base_url}{link}"
        else:
            links[kind.value] = None
            urls[kind.value] = None
    return {"success": True, **result.to_dict(), "links": links, "urls": urls}


def _error_response(exc: MindmapError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = ["create_app", "parse_artifact_filename"]
