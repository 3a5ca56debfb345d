"""Web application package."""

from .app import create_app, parse_artifact_filename

__all__ = ["create_app", "parse_artifact_filename"]
