"""Line-oriented Markdown to HTML renderer used for posts and editor previews."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Callable, Optional, Union

from .embeds import drive_image, link_replacer

if TYPE_CHECKING:
    from .config import RenderOptions

FENCE_MARKER = "```"
HORIZONTAL_RULE = "---"

HEADING_RE = re.compile(r"^(#+)")
ORDERED_ITEM_RE = re.compile(r"^\d+\.\s")
RAW_HTML_RE = re.compile(r"^<[^>]+>.*</[^>]+>$")
AUTOLINK_RE = re.compile(r"(https?://\S+)")
# Paragraph text is escaped before the inline pass, so the shortcode arrives as entities.
DRIVE_IMAGE_RE = re.compile(r"&lt;img=([^\s&]+)&gt;")

Replacement = Union[str, Callable[["re.Match[str]"], str]]
InlineRule = tuple["re.Pattern[str]", Replacement]

# Order matters: bold must consume "**" before italic sees single asterisks.
INLINE_RULES: tuple[InlineRule, ...] = (
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"~~(.*?)~~"), r"<del>\1</del>"),
    (re.compile(r"__(.+?)__"), r"<u>\1</u>"),
    (AUTOLINK_RE, r'<a href="\1">\1</a>'),
)


def escape_html(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` (in that order)."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


@dataclass(slots=True)
class _ScanState:
    inside_fence: bool = False
    fence_buffer: list[str] = field(default_factory=list)
    output: list[str] = field(default_factory=list)


BlockRule = Callable[[str], Optional[str]]


def _heading(line: str) -> str | None:
    match = HEADING_RE.match(line)
    if match is None:
        return None
    level = len(match.group(1))
    content = line[level:].strip()
    return f"<h{level}>{escape_html(content)}</h{level}>"


def _unordered_item(line: str) -> str | None:
    if not line.startswith("- "):
        return None
    return f"<li>{escape_html(line[2:])}</li>"


def _ordered_item(line: str) -> str | None:
    if ORDERED_ITEM_RE.match(line) is None:
        return None
    content = line[line.index(".") + 1 :].strip()
    return f"<li>{escape_html(content)}</li>"


def _blockquote(line: str) -> str | None:
    if not line.startswith("> "):
        return None
    return f"<blockquote>{escape_html(line[2:])}</blockquote>"


def _horizontal_rule(line: str) -> str | None:
    return "<hr>" if line == HORIZONTAL_RULE else None


def _raw_html(line: str) -> str | None:
    return line if RAW_HTML_RE.match(line) else None


BLOCK_RULES: tuple[BlockRule, ...] = (
    _heading,
    _unordered_item,
    _ordered_item,
    _blockquote,
    _horizontal_rule,
)


class MarkdownRenderer:
    """Render markdown with a fixed set of block rules and inline substitutions.

    The default configuration implements the plain blog dialect. ``RenderOptions``
    can switch on raw HTML passthrough, iframe embeds for recognised links and the
    drive image shortcode; each of these only adds behaviour on top of the base
    rules and never changes how other lines are classified.
    """

    def __init__(self, options: "RenderOptions | None" = None) -> None:
        self._options = options
        self._block_rules = self._build_block_rules()
        self._inline_rules = self._build_inline_rules()

    @property
    def options(self) -> "RenderOptions | None":
        return self._options

    def render(self, markdown: str) -> str:
        """Render ``markdown`` into an HTML fragment, one element per line."""
        state = _ScanState()
        for raw_line in markdown.split("\n"):
            self._consume(state, raw_line.strip())
        # An unterminated fence is never flushed.
        return "".join(state.output)

    def render_inline(self, text: str) -> str:
        """Apply the inline substitution pipeline to already escaped text."""
        for pattern, replacement in self._inline_rules:
            text = pattern.sub(replacement, text)
        return text

    def _consume(self, state: _ScanState, line: str) -> None:
        if line.startswith(FENCE_MARKER):
            if state.inside_fence:
                code = escape_html("".join(state.fence_buffer))
                state.output.append(f"<pre><code>{code}</code></pre>\n")
                state.fence_buffer = []
            state.inside_fence = not state.inside_fence
            return

        if state.inside_fence:
            state.fence_buffer.append(line + "\n")
            return

        for rule in self._block_rules:
            fragment = rule(line)
            if fragment is not None:
                state.output.append(fragment + "\n")
                return

        paragraph = self.render_inline(escape_html(line))
        if paragraph.strip():
            state.output.append(f"<p>{paragraph}</p>\n")

    def _build_block_rules(self) -> tuple[BlockRule, ...]:
        if self._options is not None and self._options.allow_raw_html:
            return (_raw_html, *BLOCK_RULES)
        return BLOCK_RULES

    def _build_inline_rules(self) -> tuple[InlineRule, ...]:
        options = self._options
        if options is None:
            return INLINE_RULES

        rules = list(INLINE_RULES)
        if options.embed_youtube or options.embed_spreadsheets:
            rules[-1] = (AUTOLINK_RE, link_replacer(options))
        if options.drive_file_url:
            base_url = options.drive_file_url
            rules.append(
                (DRIVE_IMAGE_RE, lambda match: drive_image(match.group(1), base_url)),
            )
        return tuple(rules)


@lru_cache(maxsize=1)
def _renderer() -> MarkdownRenderer:
    """Cache the default renderer; it holds no per-call state."""
    return MarkdownRenderer()


def render_markdown(text: str) -> str:
    """Render Markdown to HTML using the shared default renderer."""
    return _renderer().render(text)
