"""Error taxonomy shared by every mindmapsys component.

Each error carries a stable ``reason`` string for API clients and the HTTP
status code the web layer responds with.
"""

from __future__ import annotations


class MindmapError(RuntimeError):
    """Base class for expected, user-visible failures."""

    reason = "error"
    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return cls.reason.replace("_", " ").capitalize()

    @property
    def message(self) -> str:
        return str(self)

    def to_payload(self) -> dict[str, object]:
        return {"success": False, "error": self.reason, "message": self.message}


class InvalidInput(MindmapError):
    """Malformed request body, missing field or undecodable text."""

    reason = "invalid_input"
    status_code = 400


class InputTooLarge(MindmapError):
    """Markdown or upload exceeds the configured size limit."""

    reason = "input_too_large"
    status_code = 413


class InvalidCredential(MindmapError):
    """API key is missing or not in the configured credential set."""

    reason = "invalid_credential"
    status_code = 401


class RateLimitExceeded(MindmapError):
    """Credential has used its quota for the current window."""

    reason = "rate_limit_exceeded"
    status_code = 429


class InvalidId(MindmapError):
    """Artifact identifier contains path separators or traversal sequences."""

    reason = "invalid_id"
    status_code = 400


class NotFound(MindmapError):
    """Requested artifact format does not exist."""

    reason = "not_found"
    status_code = 404


class StorageWriteFailed(MindmapError):
    """Persisting an artifact failed."""

    reason = "storage_write_failed"
    status_code = 500


class ExternalRendererFailed(MindmapError):
    """The external transformer timed out, crashed or produced unusable output."""

    reason = "external_renderer_failed"
    status_code = 502


class GenerationFailed(MindmapError):
    """No artifact format could be produced for a request."""

    reason = "generation_failed"
    status_code = 500


__all__ = [
    "MindmapError",
    "InvalidInput",
    "InputTooLarge",
    "InvalidCredential",
    "RateLimitExceeded",
    "InvalidId",
    "NotFound",
    "StorageWriteFailed",
    "ExternalRendererFailed",
    "GenerationFailed",
]
