"""Artifact generation package."""

from __future__ import annotations

from .generator import ArtifactGenerator
from .models import ArtifactKind, ArtifactSet, GenerationRequest, GenerationResult
from .pipeline import ConversionPipeline
from .rendering import ArtifactRenderer, embed_json, render_outline_json
from .transformer import SubprocessTransformer, TreeTransformer, create_transformer

__all__ = [
    "ArtifactGenerator",
    "ArtifactKind",
    "ArtifactRenderer",
    "ArtifactSet",
    "ConversionPipeline",
    "GenerationRequest",
    "GenerationResult",
    "SubprocessTransformer",
    "TreeTransformer",
    "create_transformer",
    "embed_json",
    "render_outline_json",
]
