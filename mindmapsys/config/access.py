"""Access gate configuration models."""

from __future__ import annotations

from pydantic import Field, field_validator

from mindmapsys.config.base import BaseConfig


class AccessConfig(BaseConfig):
    """Credential set and per-credential quota enforced by the access gate."""

    api_keys: list[str] = Field(
        default_factory=lambda: ["dev-key", "test-key"],
        description="Accepted API keys; entries may use 'env:VAR_NAME' references",
    )
    rate_limit: int = Field(100, ge=1, description="Maximum requests per credential within the window")
    window_seconds: float = Field(3600.0, gt=0, description="Length of the sliding rate-limit window")
    max_tracked_credentials: int = Field(
        10_000,
        ge=1,
        description="Capacity of the rate-window table; least recently seen credentials are evicted",
    )
    header_name: str = Field("X-API-Key", min_length=1, description="Header carrying the API key")
    query_param: str = Field("apiKey", min_length=1, description="Query parameter carrying the API key")
    public_paths: list[str] = Field(
        default_factory=lambda: ["/", "/health", "/metrics", "/docs", "/openapi.json", "/api-docs"],
        description="Exact request paths that bypass credential checks; /health is always public",
    )
    public_prefixes: list[str] = Field(
        default_factory=lambda: ["/artifact/", "/output/", "/api/file/"],
        description="Request path prefixes that bypass credential checks",
    )

    @field_validator("api_keys")
    @classmethod
    def _strip_keys(cls, keys: list[str]) -> list[str]:
        return [key.strip() for key in keys if key and key.strip()]


__all__ = ["AccessConfig"]
