"""Markdown-to-mind-map artifact service.

Markdown outlines are parsed into a heading tree and rendered into an
interactive HTML viewer, a static SVG preview and a JSON outline, which are
stored under a generated identifier and evicted after a time-to-live.
"""

__version__ = "0.1.0"

__all__: list[str] = ["__version__"]
