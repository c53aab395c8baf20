from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from wallog.config import Config, RenderOptions
from wallog.posts import BlogPost, load_posts
from wallog.publish import PublishError, write_post_pages


def _post(slug: str, published_at: datetime | None = None, body: str = "Text #tag") -> BlogPost:
    return BlogPost(slug=slug, title=slug.title(), body=body, published_at=published_at)


def test_write_post_pages_renders_fragments_and_index(tmp_path: Path) -> None:
    config = Config(output_dir=tmp_path / "site")
    posts = [
        _post("older", datetime(2024, 1, 1, tzinfo=UTC)),
        _post("undated"),
        _post("newer", datetime(2024, 6, 1, tzinfo=UTC), body="# Hi\n\nFresh **news**"),
    ]

    result = write_post_pages(posts, config)

    posts_dir = tmp_path / "site" / "posts"
    assert result.total == 3
    assert (posts_dir / "newer.html").read_text(encoding="utf-8") == (
        "<h1>Hi</h1>\n<p>Fresh <strong>news</strong></p>\n"
    )
    assert result.index_path == posts_dir / "index.json"

    index = json.loads(result.index_path.read_text(encoding="utf-8"))
    assert [entry["slug"] for entry in index] == ["newer", "older", "undated"]
    assert index[0]["description"] == "Fresh news"
    assert index[0]["path"] == "newer.html"
    assert index[0]["published_at"] == "2024-06-01T00:00:00+00:00"
    assert index[1]["hashtags"] == ["#tag"]
    assert index[2]["published_at"] is None


def test_write_post_pages_removes_stale_pages(tmp_path: Path) -> None:
    config = Config(output_dir=tmp_path / "site")
    stale = tmp_path / "site" / "posts" / "deleted.html"
    stale.parent.mkdir(parents=True)
    stale.write_text("<p>old</p>\n", encoding="utf-8")

    result = write_post_pages([_post("kept")], config)

    assert not stale.exists()
    assert result.removed == [stale]
    assert (tmp_path / "site" / "posts" / "kept.html").exists()


def test_write_post_pages_uses_configured_renderer(tmp_path: Path) -> None:
    config = Config(
        output_dir=tmp_path / "site",
        renderer=RenderOptions(drive_file_url="https://files.example.com"),
    )

    write_post_pages([_post("photo", body="<img=abc>")], config)

    page = (tmp_path / "site" / "posts" / "photo.html").read_text(encoding="utf-8")
    assert 'src="https://files.example.com/abc"' in page


def test_nested_slugs_write_into_subdirectories(tmp_path: Path) -> None:
    config = Config(output_dir=tmp_path / "site")

    result = write_post_pages([_post("2024/trip")], config)

    assert result.pages == [tmp_path / "site" / "posts" / "2024" / "trip.html"]


def test_duplicate_slugs_fail_before_writing(tmp_path: Path) -> None:
    config = Config(output_dir=tmp_path / "site")
    first = _post("same", body="first").model_copy(update={"source_path": "a/same.md"})
    second = _post("same", body="second").model_copy(update={"source_path": "b/same.md"})

    with pytest.raises(PublishError, match="Duplicate slug 'same'"):
        write_post_pages([first, second], config)

    assert not (tmp_path / "site").exists()


def test_slug_escaping_output_directory_is_refused(tmp_path: Path) -> None:
    config = Config(output_dir=tmp_path / "site")
    unchecked = BlogPost.model_construct(slug="../../escaped", title="x", body="x", tags=[])

    with pytest.raises(PublishError, match="outside"):
        write_post_pages([_post("fine"), unchecked], config)

    assert not (tmp_path / "escaped.html").exists()
    assert not (tmp_path / "site").exists()


def test_same_file_names_in_different_folders_publish_separately(tmp_path: Path) -> None:
    content = tmp_path / "content"
    for folder in ("a", "b"):
        (content / folder).mkdir(parents=True)
        (content / folder / "hello.md").write_text(f"From {folder}\n", encoding="utf-8")
    config = Config(content_dir=content, output_dir=tmp_path / "site")

    write_post_pages(load_posts(content), config)

    posts_dir = tmp_path / "site" / "posts"
    assert (posts_dir / "a" / "hello.html").read_text(encoding="utf-8") == "<p>From a</p>\n"
    assert (posts_dir / "b" / "hello.html").read_text(encoding="utf-8") == "<p>From b</p>\n"
