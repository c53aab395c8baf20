"""wallog publishing core: markdown rendering and post helpers."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as load_pkg_version

from .markdown import MarkdownRenderer, escape_html, render_markdown

__all__ = ["__version__", "MarkdownRenderer", "escape_html", "render_markdown"]

try:
    __version__ = load_pkg_version("wallog")
except PackageNotFoundError:
    __version__ = "0.0.0"
