"""Load blog posts from markdown files and derive their rendered views."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .markdown import FENCE_MARKER, MarkdownRenderer, render_markdown

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".md", ".markdown"}
DEFAULT_DESCRIPTION_LENGTH = 100

HASHTAG_RE = re.compile(r"(?<!\S)#[^\s#]\S*")
PARAGRAPH_RE = re.compile(r"<p>(.*?)</p>")
TAG_RE = re.compile(r"<[^>]*>")
FIRST_HEADING_RE = re.compile(r"^\s*#+\s*(\S.*?)\s*$", re.MULTILINE)
# Slugs become file paths under the output directory.
SLUG_SEGMENT_RE = re.compile(r"^[\w.-]+$")
SLUG_UNSAFE_RE = re.compile(r"[^\w./-]+")


class FrontMatterError(ValueError):
    """Raised when a markdown file has malformed front matter."""


class BlogPost(BaseModel):
    """A post as stored on disk: metadata plus the original markdown."""

    slug: str
    title: str
    body: str = Field(default="", description="Original markdown; rendered on read.")
    tags: list[str] = Field(default_factory=list)
    published_at: datetime | None = Field(default=None)
    source_path: str | None = Field(default=None)

    @field_validator("slug")
    def _normalize_slug(cls, value: str) -> str:
        slug = value.strip().strip("/")
        if not slug:
            raise ValueError("slug must not be empty")
        for segment in slug.split("/"):
            if segment in {".", ".."} or not SLUG_SEGMENT_RE.match(segment):
                raise ValueError(f"slug '{slug}' is not a safe relative path")
        return slug

    @field_validator("tags", mode="before")
    def _coerce_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split()
        return [tag if tag.startswith("#") else f"#{tag}" for tag in map(str, value)]

    @field_validator("published_at", mode="before")
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime(value.year, value.month, value.day)
        return value


@dataclass(slots=True)
class RenderedPost:
    """A post together with the HTML and summary data derived from it."""

    post: BlogPost
    html: str
    description: str | None
    hashtags: list[str] = field(default_factory=list)


def extract_hashtags(text: str) -> list[str]:
    """Return ``#tag`` tokens that start a word, first occurrence order, no repeats."""
    seen: dict[str, None] = {}
    for match in HASHTAG_RE.finditer(text):
        seen.setdefault(match.group(0), None)
    return list(seen)


def extract_description(html: str, limit: int = DEFAULT_DESCRIPTION_LENGTH) -> str | None:
    """Build a plain-text teaser from the paragraphs of a rendered fragment."""
    if not html:
        return None
    paragraphs = PARAGRAPH_RE.findall(html)
    if not paragraphs:
        return None
    text = " ".join(TAG_RE.sub("", paragraph) for paragraph in paragraphs)
    return text[:limit]


def load_post(path: str | Path, root: str | Path | None = None) -> BlogPost:
    """Load a markdown file with optional YAML front matter into a post.

    Without a ``slug`` in the front matter the slug is derived from the file
    name; when ``root`` is given it is the path relative to ``root`` so nested
    posts with the same file name stay distinct.
    """
    source_path = Path(path)
    text = source_path.read_text(encoding="utf-8")
    front_matter, body = _split_front_matter(text, source_path)

    data = dict(front_matter)
    data.setdefault("slug", _default_slug(source_path, root))
    if "title" not in data:
        data["title"] = _first_heading(body) or data["slug"]

    try:
        return BlogPost(**data, body=body.strip("\n"), source_path=str(source_path))
    except (TypeError, ValidationError) as exc:
        raise FrontMatterError(f"Invalid metadata in {source_path}") from exc


def load_posts(directory: str | Path) -> list[BlogPost]:
    """Load every markdown post under ``directory`` in path order."""
    root = Path(directory)
    if not root.exists():
        logger.warning("Post directory %s does not exist; nothing to load.", root)
        return []
    paths = sorted(
        path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
    )
    return [load_post(path, root) for path in paths]


def render_post(
    post: BlogPost,
    renderer: MarkdownRenderer | None = None,
    description_length: int = DEFAULT_DESCRIPTION_LENGTH,
) -> RenderedPost:
    """Render the stored markdown of ``post`` and derive its description and hashtags."""
    html = renderer.render(post.body) if renderer is not None else render_markdown(post.body)
    return RenderedPost(
        post=post,
        html=html,
        description=extract_description(html, description_length),
        hashtags=_merge_tags(post.tags, extract_hashtags(strip_fenced_code(post.body))),
    )


def strip_fenced_code(markdown: str) -> str:
    """Drop fence marker lines and everything between them, as the renderer does."""
    kept: list[str] = []
    inside_fence = False
    for line in markdown.split("\n"):
        if line.strip().startswith(FENCE_MARKER):
            inside_fence = not inside_fence
            continue
        if not inside_fence:
            kept.append(line)
    return "\n".join(kept)


def _default_slug(source_path: Path, root: str | Path | None) -> str:
    stem = source_path.with_suffix("")
    relative = stem.relative_to(Path(root)) if root is not None else Path(stem.name)
    return SLUG_UNSAFE_RE.sub("-", relative.as_posix()).lower()


def _merge_tags(*groups: Iterable[str]) -> list[str]:
    merged: dict[str, None] = {}
    for group in groups:
        for tag in group:
            merged.setdefault(tag, None)
    return list(merged)


def _first_heading(body: str) -> str | None:
    match = FIRST_HEADING_RE.search(strip_fenced_code(body))
    return match.group(1) if match else None


def _split_front_matter(text: str, source_path: Path) -> tuple[dict[str, Any], str]:
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, text

    front_lines: list[str] = []
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            try:
                data = yaml.safe_load("\n".join(front_lines)) or {}
            except yaml.YAMLError as exc:
                raise FrontMatterError(f"Unreadable front matter in {source_path}") from exc
            if not isinstance(data, dict):
                raise FrontMatterError(f"Front matter in {source_path} must be a mapping.")
            body = "\n".join(lines[idx + 1 :])
            return data, body
        front_lines.append(line)
    raise FrontMatterError(f"Closing front matter delimiter '---' missing in {source_path}.")
