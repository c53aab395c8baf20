"""Embed helpers for links and drive images found in paragraph text."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .config import RenderOptions

YOUTUBE_RE = re.compile(
    r"https?://(?:www\.)?youtube\.com/watch\?v=([a-zA-Z0-9_-]+)"
    r"|https?://(?:www\.)?youtu\.be/([a-zA-Z0-9_-]+)"
)
SPREADSHEET_RE = re.compile(r"https://docs\.google\.com/spreadsheets/d/([a-zA-Z0-9_-]+)(?:/.*)?")

_RESPONSIVE_CONTAINER = "position: relative; width: 100%; padding-bottom: 56.25%;"
_RESPONSIVE_FRAME = "position: absolute; top: 0; left: 0; width: 100%; height: 100%;"
_YOUTUBE_ALLOW = (
    "accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture"
)


def youtube_embed(url: str) -> str | None:
    """Return a responsive iframe for a YouTube watch or short link."""
    match = YOUTUBE_RE.search(url)
    if match is None:
        return None
    video_id = match.group(1) or match.group(2)
    return (
        f'<div class="youtube-container" style="{_RESPONSIVE_CONTAINER}">'
        f'<iframe style="{_RESPONSIVE_FRAME}" src="https://www.youtube.com/embed/{video_id}" '
        f'frameborder="0" allow="{_YOUTUBE_ALLOW}" allowfullscreen></iframe></div>'
    )


def spreadsheet_embed(url: str) -> str | None:
    """Return a responsive iframe for a published Google Sheets document."""
    match = SPREADSHEET_RE.search(url)
    if match is None:
        return None
    sheet_id = match.group(1)
    return (
        f'<div class="spreadsheet-container" style="{_RESPONSIVE_CONTAINER}">'
        f'<iframe style="{_RESPONSIVE_FRAME}" '
        f'src="https://docs.google.com/spreadsheets/d/{sheet_id}/pubhtml?widget=true&amp;headers=false" '
        f'frameborder="0"></iframe></div>'
    )


def anchor(url: str) -> str:
    return f'<a href="{url}">{url}</a>'


def drive_image(file_id: str, base_url: str) -> str:
    """Render the ``<img=FILE_ID>`` shortcode as a lazily loaded image."""
    src = f"{base_url.rstrip('/')}/{file_id}"
    return f'<img src="{src}" alt="Image {file_id}" loading="lazy">'


def link_replacer(options: "RenderOptions") -> Callable[["re.Match[str]"], str]:
    """Build the autolink replacement honouring the enabled embed kinds."""
    converters: list[Callable[[str], str | None]] = []
    if options.embed_spreadsheets:
        converters.append(spreadsheet_embed)
    if options.embed_youtube:
        converters.append(youtube_embed)

    def _replace(match: "re.Match[str]") -> str:
        url = match.group(1)
        for convert in converters:
            embedded = convert(url)
            if embedded is not None:
                return embedded
        return anchor(url)

    return _replace
