"""HTTP server configuration models."""

from __future__ import annotations

from pydantic import Field

from mindmapsys.config.base import BaseConfig


class WebConfig(BaseConfig):
    """Settings for the FastAPI application and the uvicorn server."""

    title: str = Field("Mindmap Artifact Service", min_length=1, description="API title shown in the docs")
    host: str = Field("127.0.0.1", description="Host to bind the API server to")
    port: int = Field(3000, ge=1, le=65535, description="Port to bind the API server to")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser",
    )


__all__ = ["WebConfig"]
