from datetime import datetime
from pathlib import Path

import pytest

from wallog.config import RenderOptions
from wallog.markdown import MarkdownRenderer
from wallog.posts import (
    BlogPost,
    FrontMatterError,
    extract_description,
    extract_hashtags,
    load_post,
    load_posts,
    render_post,
    strip_fenced_code,
)

COMPLETE_POST = """---
title: Hello
slug: hello-world
tags: [journal, "#life"]
published_at: 2024-05-01
---
# Heading

Body with #extra and #journal today.
"""


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_extract_hashtags_keeps_first_occurrence_order() -> None:
    assert extract_hashtags("hi #a and #b #a") == ["#a", "#b"]
    assert extract_hashtags("#start line\nnext #two") == ["#start", "#two"]


def test_extract_hashtags_requires_word_start() -> None:
    assert extract_hashtags("mail a#b or c#d") == []
    assert extract_hashtags("## Sub heading") == []


def test_extract_description_joins_paragraph_text() -> None:
    html = "<h1>x</h1>\n<p>a <strong>b</strong></p>\n<li>skip</li>\n<p>c</p>\n"
    assert extract_description(html) == "a b c"


def test_extract_description_without_paragraphs() -> None:
    assert extract_description("<h1>x</h1>\n") is None
    assert extract_description("") is None


def test_extract_description_truncates() -> None:
    html = "<p>" + "x" * 150 + "</p>\n"
    assert extract_description(html) == "x" * 100
    assert extract_description(html, limit=10) == "x" * 10


def test_load_post_reads_front_matter(tmp_path: Path) -> None:
    post = load_post(_write(tmp_path / "hello.md", COMPLETE_POST))

    assert post.slug == "hello-world"
    assert post.title == "Hello"
    assert post.tags == ["#journal", "#life"]
    assert post.published_at == datetime(2024, 5, 1)
    assert post.body.startswith("# Heading")
    assert post.source_path == str(tmp_path / "hello.md")


def test_load_post_defaults_slug_and_title(tmp_path: Path) -> None:
    post = load_post(_write(tmp_path / "My Post.md", "\n## First Thoughts\n\nText.\n"))

    assert post.slug == "my-post"
    assert post.title == "First Thoughts"
    assert post.tags == []
    assert post.published_at is None


def test_load_post_title_falls_back_to_slug(tmp_path: Path) -> None:
    post = load_post(_write(tmp_path / "notes.md", "Just text.\n"))
    assert post.title == "notes"


def test_load_post_rejects_unclosed_front_matter(tmp_path: Path) -> None:
    with pytest.raises(FrontMatterError):
        load_post(_write(tmp_path / "broken.md", "---\ntitle: Missing\n"))


def test_load_post_rejects_non_mapping_front_matter(tmp_path: Path) -> None:
    with pytest.raises(FrontMatterError):
        load_post(_write(tmp_path / "list.md", "---\n- a\n- b\n---\nBody\n"))


def test_load_post_rejects_invalid_metadata(tmp_path: Path) -> None:
    with pytest.raises(FrontMatterError):
        load_post(_write(tmp_path / "date.md", "---\npublished_at: not-a-date\n---\nBody\n"))


def test_load_post_rejects_unreadable_yaml(tmp_path: Path) -> None:
    with pytest.raises(FrontMatterError):
        load_post(_write(tmp_path / "yaml.md", "---\ntitle: [unclosed\n---\nBody\n"))


def test_load_posts_sorted_and_filtered(tmp_path: Path) -> None:
    _write(tmp_path / "b.md", "# B\n")
    _write(tmp_path / "a.markdown", "# A\n")
    _write(tmp_path / "nested" / "c.md", "# C\n")
    _write(tmp_path / "notes.txt", "# ignored\n")

    posts = load_posts(tmp_path)

    assert [post.slug for post in posts] == ["a", "b", "nested/c"]


def test_load_posts_missing_directory(tmp_path: Path) -> None:
    assert load_posts(tmp_path / "missing") == []


def test_render_post_derives_html_description_and_hashtags(tmp_path: Path) -> None:
    post = load_post(_write(tmp_path / "hello.md", COMPLETE_POST))

    rendered = render_post(post)

    assert rendered.html == "<h1>Heading</h1>\n<p>Body with #extra and #journal today.</p>\n"
    assert rendered.description == "Body with #extra and #journal today."
    assert rendered.hashtags == ["#journal", "#life", "#extra"]


def test_render_post_uses_given_renderer() -> None:
    post = BlogPost(slug="clip", title="Clip", body="https://youtu.be/abc123")
    renderer = MarkdownRenderer(RenderOptions(embed_youtube=True))

    rendered = render_post(post, renderer, description_length=20)

    assert "youtube.com/embed/abc123" in rendered.html
    assert rendered.description == ""


def test_blog_post_rejects_blank_slug() -> None:
    with pytest.raises(ValueError):
        BlogPost(slug="  ", title="x")


@pytest.mark.parametrize("slug", ["../../escaped", "a/../b", "./here", "bad slug!", "a//b"])
def test_blog_post_rejects_unsafe_slugs(slug: str) -> None:
    with pytest.raises(ValueError):
        BlogPost(slug=slug, title="x")


def test_load_post_rejects_traversal_slug(tmp_path: Path) -> None:
    with pytest.raises(FrontMatterError):
        load_post(_write(tmp_path / "evil.md", "---\nslug: ../../escaped\n---\nBody\n"))


def test_default_slug_replaces_unsafe_characters(tmp_path: Path) -> None:
    post = load_post(_write(tmp_path / "Post (1).md", "Text\n"))
    assert post.slug == "post-1-"


def test_load_posts_keeps_nested_slugs_distinct(tmp_path: Path) -> None:
    _write(tmp_path / "a" / "hello.md", "first\n")
    _write(tmp_path / "b" / "hello.md", "second\n")

    posts = load_posts(tmp_path)

    assert [post.slug for post in posts] == ["a/hello", "b/hello"]


def test_unclosed_front_matter_error_names_the_file(tmp_path: Path) -> None:
    path = _write(tmp_path / "broken.md", "---\ntitle: Missing\n")

    with pytest.raises(FrontMatterError) as excinfo:
        load_post(path)

    assert str(path) in str(excinfo.value)


FENCED_POST = """```c
#include <stdio.h>
# comment
```
Text #real
## Actual title
"""


def test_fenced_code_is_ignored_for_title_and_hashtags(tmp_path: Path) -> None:
    post = load_post(_write(tmp_path / "code.md", FENCED_POST))

    rendered = render_post(post)

    assert post.title == "Actual title"
    assert rendered.hashtags == ["#real"]


def test_strip_fenced_code_drops_unterminated_fences() -> None:
    assert strip_fenced_code("keep\n```\n#gone\n```\nalso\n```\n#open") == "keep\nalso"
