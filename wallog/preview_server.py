"""Preview server that renders markdown posts on every request.

Static files are served as-is from the content directory; any request for a
``.md``/``.markdown`` file is read from disk and passed through the renderer so
edits show up on the next reload.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Iterator

from .markdown import MarkdownRenderer
from .posts import SUPPORTED_SUFFIXES, FrontMatterError, load_post

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class _ThreadingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_request_handler(
    directory: Path,
    renderer: MarkdownRenderer | None = None,
) -> type[SimpleHTTPRequestHandler]:
    """Create a request handler rooted at ``directory`` that renders markdown files."""
    directory_path = str(directory)
    markdown_renderer = renderer or MarkdownRenderer()

    class PreviewRequestHandler(SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=directory_path, **kwargs)

        extensions_map = dict(SimpleHTTPRequestHandler.extensions_map)
        extensions_map.update(
            {
                ".webp": "image/webp",
                ".svg": "image/svg+xml",
                ".json": "application/json; charset=utf-8",
                ".css": "text/css; charset=utf-8",
                ".html": HTML_CONTENT_TYPE,
            }
        )

        def do_GET(self) -> None:  # noqa: N802
            path = Path(self.translate_path(self.path))
            if path.suffix.lower() not in SUPPORTED_SUFFIXES or not path.is_file():
                super().do_GET()
                return
            self._send_rendered(path)

        def _send_rendered(self, path: Path) -> None:
            try:
                post = load_post(path)
            except FrontMatterError as exc:
                logger.warning("Cannot preview %s: %s", path, exc)
                self.send_error(HTTPStatus.UNPROCESSABLE_ENTITY, str(exc))
                return
            body = markdown_renderer.render(post.body).encode("utf-8")
            self.send_response(HTTPStatus.OK)
            self.send_header("Content-Type", HTML_CONTENT_TYPE)
            self.send_header("Content-Length", str(len(body)))
            self.send_header("Cache-Control", "no-store")
            self.end_headers()
            self.wfile.write(body)

    return PreviewRequestHandler


@contextlib.contextmanager
def serve(
    host: str,
    port: int,
    handler: type[SimpleHTTPRequestHandler],
) -> Iterator[ThreadingHTTPServer]:
    """Context manager that creates and cleans up the HTTP server."""
    server = _ThreadingHTTPServer((host, port), handler)
    try:
        yield server
    finally:
        try:
            server.shutdown()
        finally:
            server.server_close()


@dataclass(slots=True)
class PreviewServerHandle:
    server: ThreadingHTTPServer
    thread: threading.Thread
    host: str
    port: int

    @property
    def url(self) -> str:
        return site_url(self.host, self.port)


def site_url(host: str, port: int) -> str:
    url_host = "127.0.0.1" if host in {"0.0.0.0", ""} else host
    return f"http://{url_host}:{port}/"


def bound_address(server: ThreadingHTTPServer) -> tuple[str, int]:
    """Return the host and port the server actually bound to."""
    raw_host = server.server_address[0]
    host = raw_host.decode("utf-8", "ignore") if isinstance(raw_host, bytes) else str(raw_host)
    return host, int(server.server_address[1])


def start_preview(
    directory: Path,
    *,
    renderer: MarkdownRenderer | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
    max_attempts: int = 20,
) -> PreviewServerHandle:
    """Start the preview server in a background thread.

    Tries ``port`` and increments until a free port is found, up to ``max_attempts``.
    Returns a handle that can be passed to ``stop_preview``.
    """
    handler = make_request_handler(directory.resolve(), renderer)

    last_exc: OSError | None = None
    for attempt in range(max_attempts + 1):
        try:
            server = _ThreadingHTTPServer((host, port + attempt), handler)
        except OSError as exc:  # port busy or permission error
            last_exc = exc
            continue
        bound_host, bound_port = bound_address(server)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        logger.debug("Preview server listening on %s:%s", bound_host, bound_port)
        return PreviewServerHandle(server=server, thread=thread, host=bound_host, port=bound_port)

    if last_exc:
        raise last_exc
    raise OSError("Unable to bind preview server to the requested port range")


def stop_preview(handle: PreviewServerHandle | None) -> None:
    """Stop a running preview server started by ``start_preview``."""
    if handle is None:
        return
    try:
        handle.server.shutdown()
    finally:
        handle.server.server_close()
    if handle.thread.is_alive():
        handle.thread.join(timeout=2.0)
