"""Write rendered post fragments and the post index to the output directory."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from .config import Config
from .markdown import MarkdownRenderer
from .posts import BlogPost, RenderedPost, render_post

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"


class PublishError(ValueError):
    """Raised when posts cannot be written without clobbering or escaping the output."""


@dataclass(slots=True)
class PublishResult:
    """Files produced by a publish run."""

    pages: list[Path] = field(default_factory=list)
    index_path: Path | None = None
    removed: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pages)


def write_post_pages(
    posts: Iterable[BlogPost],
    config: Config,
    renderer: MarkdownRenderer | None = None,
) -> PublishResult:
    """Render each post to ``<output>/posts/<slug>.html`` and write the index.

    Every target path is checked before anything is written: a slug that
    resolves outside the posts directory, or two posts sharing a slug, raise
    ``PublishError`` and leave the output untouched.
    """
    renderer = renderer or MarkdownRenderer(config.renderer)
    destination = config.posts_output_dir
    targets = _plan_targets(list(posts), destination)

    destination.mkdir(parents=True, exist_ok=True)
    existing_files = set(destination.rglob("*.html"))

    result = PublishResult()
    rendered: list[RenderedPost] = []
    for post, path in targets:
        item = render_post(post, renderer, config.description_length)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(item.html, encoding="utf-8")
        logger.debug("Rendered %s -> %s", post.source_path or post.slug, path)
        result.pages.append(path)
        existing_files.discard(path)
        rendered.append(item)

    for leftover in sorted(existing_files):
        leftover.unlink(missing_ok=True)
        result.removed.append(leftover)
        logger.debug("Removed stale page %s", leftover)

    index_path = destination / INDEX_FILENAME
    with index_path.open("w", encoding="utf-8") as handle:
        json.dump(build_index(rendered), handle, ensure_ascii=False, indent=2)
    result.index_path = index_path
    return result


def _plan_targets(posts: list[BlogPost], destination: Path) -> list[tuple[BlogPost, Path]]:
    root = destination.resolve()
    owners: dict[str, BlogPost] = {}
    targets: list[tuple[BlogPost, Path]] = []
    for post in posts:
        path = destination / f"{post.slug}.html"
        if not path.resolve().is_relative_to(root):
            raise PublishError(f"Slug '{post.slug}' resolves outside {destination}.")
        previous = owners.get(post.slug)
        if previous is not None:
            raise PublishError(
                f"Duplicate slug '{post.slug}' in {previous.source_path or previous.slug} "
                f"and {post.source_path or post.slug}."
            )
        owners[post.slug] = post
        targets.append((post, path))
    return targets


def build_index(rendered: Iterable[RenderedPost]) -> list[dict[str, Any]]:
    """Index entries sorted newest first; undated posts follow in slug order."""
    entries = sorted(rendered, key=_index_sort_key)
    return [
        {
            "slug": item.post.slug,
            "title": item.post.title,
            "description": item.description,
            "hashtags": item.hashtags,
            "published_at": item.post.published_at.isoformat() if item.post.published_at else None,
            "path": f"{item.post.slug}.html",
        }
        for item in entries
    ]


def _index_sort_key(item: RenderedPost) -> tuple[int, float, str]:
    published = item.post.published_at
    if published is None:
        return (1, 0.0, item.post.slug)
    return (0, -_timestamp(published), item.post.slug)


def _timestamp(value: datetime) -> float:
    # Naive values are compared as if they were UTC.
    if value.tzinfo is None:
        return (value - datetime(1970, 1, 1)).total_seconds()
    return value.timestamp()
