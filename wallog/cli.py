"""CLI entrypoints for wallog rendering and publishing."""

import shutil
import sys
import webbrowser
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from .config import Config, load_config
from .markdown import MarkdownRenderer
from .posts import FrontMatterError, load_post, load_posts, render_post
from .preview_server import bound_address, make_request_handler, serve, site_url
from .publish import PublishError, write_post_pages

console = Console()
app = typer.Typer(help="wallog markdown rendering and publishing toolkit.")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to configuration file or project directory."),
]
SourceArgument = Annotated[
    str,
    typer.Argument(..., help="Markdown file to read, or '-' for standard input."),
]


@app.command()
def render(
    source: SourceArgument,
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Write the HTML fragment to this file."),
    ] = None,
    config_path: ConfigPathOption = ".",
) -> None:
    """Render a markdown document to an HTML fragment."""
    config: Config = _load(config_path)
    markdown = _read_source(source)
    html = MarkdownRenderer(config.renderer).render(markdown)

    if output is None:
        # Raw write keeps the fragment free of Rich markup handling.
        sys.stdout.write(html)
        return

    target = Path(output)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(html, encoding="utf-8")
    except OSError as exc:
        console.print(f"[bold red]Failed to write output[/]: {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold green]Rendered[/]: {_display_path(target)}")


@app.command()
def inspect(
    source: Annotated[str, typer.Argument(..., help="Markdown post file to inspect.")],
    config_path: ConfigPathOption = ".",
) -> None:
    """Show the title, description and hashtags derived from a post."""
    config: Config = _load(config_path)
    path = Path(source)
    if not path.is_file():
        console.print(f"[bold red]Post not found[/]: {source}")
        raise typer.Exit(code=1)

    try:
        post = load_post(path)
    except FrontMatterError as exc:
        console.print(f"[bold red]Invalid post[/]: {exc}")
        raise typer.Exit(code=1) from exc

    rendered = render_post(post, MarkdownRenderer(config.renderer), config.description_length)
    console.print(f"[bold blue]Title[/]: {post.title}", highlight=False)
    console.print(f"[bold blue]Slug[/]: {post.slug}", highlight=False)
    console.print(f"[bold blue]Description[/]: {rendered.description or '(none)'}", highlight=False)
    hashtags = ", ".join(rendered.hashtags) if rendered.hashtags else "(none)"
    console.print(f"[bold blue]Hashtags[/]: {hashtags}", highlight=False)


@app.command()
def build(
    config_path: ConfigPathOption = ".",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Clear the output directory before publishing."),
    ] = False,
) -> None:
    """Render every post in the content directory into the output directory."""
    config: Config = _load(config_path)

    if force and config.output_dir.exists():
        console.print("[bold yellow]Force rebuild[/]: clearing output directory before publishing.")
        _remove_path(config.output_dir)

    try:
        posts = load_posts(config.content_dir)
    except FrontMatterError as exc:
        console.print(f"[bold red]Invalid post[/]: {exc}")
        raise typer.Exit(code=1) from exc

    if not posts:
        console.print(
            f"[bold yellow]No posts[/]: nothing found under {_display_path(config.content_dir)}"
        )

    try:
        result = write_post_pages(posts, config)
    except PublishError as exc:
        console.print(f"[bold red]Publish failed[/]: {exc}")
        raise typer.Exit(code=1) from exc
    console.print(
        "[bold green]Posts[/]: "
        f"rendered {result.total} page(s) in {_display_path(config.posts_output_dir)}"
    )
    if result.removed:
        console.print(
            f"[bold yellow]Posts[/]: removed {len(result.removed)} stale page(s)"
        )
    if result.index_path is not None:
        console.print(f"[bold green]Index[/]: {_display_path(result.index_path)}")


@app.command()
def preview(
    config_path: ConfigPathOption = ".",
    host: Annotated[
        str | None,
        typer.Option("--host", help="Host interface to bind the preview server."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port for the preview server."),
    ] = None,
    open_browser: Annotated[
        bool,
        typer.Option(
            "--open-browser/--no-open-browser",
            help="Automatically open the preview in a browser after starting.",
        ),
    ] = False,
) -> None:
    """Serve the content directory, rendering markdown posts on each request."""
    config: Config = _load(config_path)
    bind_host = host if host is not None else config.preview.host
    bind_port = port if port is not None else config.preview.port
    if bind_port < 0 or bind_port > 65535:
        raise typer.BadParameter("Port must be between 0 and 65535.")

    content_dir = Path(config.content_dir)
    if not content_dir.exists():
        console.print(f"[bold red]Content directory not found[/]: {content_dir}")
        raise typer.Exit(code=1)

    handler = make_request_handler(content_dir, MarkdownRenderer(config.renderer))

    try:
        with serve(bind_host, bind_port, handler) as server:
            url = site_url(*bound_address(server))
            console.print(
                f"[bold green]Preview server[/]: serving {content_dir} at {url} "
                "(press Ctrl+C to stop)"
            )
            if open_browser:
                webbrowser.open(url)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                console.print("\n[bold yellow]Stopping preview server...[/]")
    except OSError as exc:
        console.print(f"[bold red]Failed to start preview server[/]: {exc}")
        raise typer.Exit(code=1) from exc


@app.command()
def clean(config_path: ConfigPathOption = ".") -> None:
    """Remove the published output directory."""
    config: Config = _load(config_path)
    output_dir = Path(config.output_dir)
    if output_dir.exists():
        console.print(f"[bold green]Removing[/]: site output ({output_dir})")
        _remove_path(output_dir)
        console.print("[bold green]Clean complete[/]: removed 1 directory.")
    else:
        console.print(f"[bold yellow]Skipping[/]: site output ({output_dir}) not found")


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[bold red]Cannot read source[/]: {exc}")
        raise typer.Exit(code=1) from exc


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists():
        path.unlink(missing_ok=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
