"""Local preview server for Folio.

`folio serve` builds the site, serves the output directory over HTTP, and
pushes a reload message to open browser tabs whenever a source changes.

Pieces:
- DevServer: owns the build, the watcher, and both servers.
- LiveReload: websocket endpoint that tells connected pages to reload.
- _PreviewRequestHandler: serves files, adding the reload snippet to HTML.
- _SourceWatcher: watchdog handler that forwards relevant changes.

Rebuilds go to a sibling staging directory which replaces the output
directory only once the build succeeds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import CONFIG_FILENAME, build_site, load_config
from .errors import BuildError

logger = logging.getLogger(__name__)

WATCHED_FOLDERS = ("site", "data")

RELOAD_SNIPPET = """
<script>
(() => {{
  const socket = new WebSocket('ws://' + location.hostname + ':{port}');
  socket.onmessage = (event) => {{
    const message = JSON.parse(event.data || '{{}}');
    if (message.type === 'reload') location.reload();
  }};
}})();
</script>
"""


def inject_reload_snippet(html: str, snippet: str) -> str:
    """Place the reload snippet just before `</body>`, or append it."""
    head, marker, tail = html.rpartition("</body>")
    if not marker:
        return html + snippet
    return f"{head}{snippet}{marker}{tail}"


class _PreviewRequestHandler(SimpleHTTPRequestHandler):
    """Static file handler for the preview server.

    HTML responses carry the reload snippet. Directory listings are never
    shown; a directory without index.html is a 404.
    """

    snippet = RELOAD_SNIPPET.format(port=4001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover - send_head handles directories
        return self._not_found()

    def _resolve(self) -> Path | None:
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        return target if target.is_file() else None

    def _reply_html(self, status: int, html: str) -> None:
        body = inject_reload_snippet(html, self.snippet).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._reply_html(404, page.read_text(encoding="utf-8"))
        else:
            self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = self._resolve()
        if target is None:
            return self._not_found()
        if target.suffix != ".html":
            return super().send_head()
        self._reply_html(200, target.read_text(encoding="utf-8"))
        return None


class LiveReload:
    """Websocket endpoint broadcasting reload messages.

    The asyncio loop runs on its own thread; `notify` may be called from any
    thread.

    Attributes:
        port: Websocket port.
        clients: Currently connected sockets.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self.serve())
        except OSError as exc:
            logger.error("Live reload failed to start on port %d: %s", self.port, exc)

    async def serve(self) -> None:  # pragma: no cover - needs a real socket
        async with websockets.serve(self.register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def register(self, websocket) -> None:
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    async def broadcast(self, message: str) -> None:
        for websocket in list(self.clients):
            try:
                await websocket.send(message)
            except Exception:
                logger.debug("Dropping disconnected live reload client")
                self.clients.discard(websocket)

    def notify(self) -> None:
        payload = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self.broadcast(payload), self.loop)

    def shutdown(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Builds, serves, and rebuilds a Folio project.

    Attributes:
        project_root: Project directory.
        output_dir: Directory served over HTTP.
        staging_dir: Where rebuilds are written before being swapped in.
        http_port: HTTP port.
        ws_port: Live reload websocket port.
        live_reload: Websocket broadcaster.
        quiet_period: Seconds after a rebuild during which changes are ignored.
        settle_delay: Pause between a finished rebuild and the reload message.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        config = load_config(project_root)
        self.project_root = project_root
        self.output_dir = project_root / config.get("output_dir", "output")
        self.staging_dir = self.output_dir.parent / f"{self.output_dir.name}.staging"
        self.http_port = int(http_port or config.get("port", 4000))
        if ws_port is None:
            # An explicit HTTP port moves the websocket port with it.
            ws_port = self.http_port + 1 if http_port else config.get("ws_port")
        self.ws_port = int(ws_port or self.http_port + 1)
        self.live_reload = LiveReload(self.ws_port)
        self.quiet_period = 0.05
        self.settle_delay = 0.05
        self._observer: Observer | None = None
        self._busy = False
        self._finished_at = 0.0
        self._built_signature: tuple | None = None

    @property
    def root_url(self) -> str:
        """Links in preview builds point at the local server."""
        return f"http://localhost:{self.http_port}"

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - blocks forever
        self.publish(include_drafts)
        self._built_signature = self.source_signature()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.live_reload.run, daemon=True).start()
        self.watch(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self.live_reload.shutdown()

    def publish(self, include_drafts: bool) -> None:
        """Build into the staging directory and swap it in as the output.

        Raises:
            BuildError: If the build fails; the output directory is untouched.
        """
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            root_url=self.root_url,
            clean_output=True,
            output_dir_override=self.staging_dir,
        )
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(self.staging_dir, self.output_dir)

    def _serve_http(self) -> None:  # pragma: no cover - needs a real socket
        handler_cls = type(
            "PreviewRequestHandler",
            (_PreviewRequestHandler,),
            {"snippet": RELOAD_SNIPPET.format(port=self.ws_port)},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Previewing %s at %s", self.output_dir, self.root_url)
        httpd.serve_forever()

    def watch(self, include_drafts: bool) -> None:
        watcher = _SourceWatcher(self, include_drafts)
        observer = Observer()
        for folder in WATCHED_FOLDERS:
            path = self.project_root / folder
            if path.is_dir():
                observer.schedule(watcher, str(path), recursive=True)
        observer.schedule(watcher, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def rebuild(self, include_drafts: bool) -> None:
        """Republish after a source change and tell browsers to reload.

        Changes that arrive within the quiet period, and events that leave
        the sources unchanged, are ignored. Changes saved while a build runs
        are picked up by building again before the reload is sent. A failed
        build is logged and the previous output keeps being served.
        """
        if self._busy or time.time() - self._finished_at < self.quiet_period:
            return
        signature = self.source_signature()
        if signature is not None and signature == self._built_signature:
            return
        self._busy = True
        try:
            while True:
                logger.info("Sources changed; rebuilding")
                try:
                    self.publish(include_drafts)
                except BuildError as exc:
                    logger.error("Rebuild failed: %s", exc)
                    return
                self._built_signature = signature
                latest = self.source_signature()
                if latest is None or latest == signature:
                    break
                signature = latest
            if self.settle_delay:
                time.sleep(self.settle_delay)
            self.live_reload.notify()
        finally:
            self._busy = False
            self._finished_at = time.time()

    def watched_files(self) -> list[Path]:
        files: list[Path] = []
        for folder in WATCHED_FOLDERS:
            root = self.project_root / folder
            if root.is_dir():
                files.extend(p for p in sorted(root.rglob("*")) if not p.is_dir())
        config = self.project_root / CONFIG_FILENAME
        if config.is_file():
            files.append(config)
        return files

    def source_signature(self) -> tuple | None:
        """Path, mtime and size of every watched file, or None if there are none."""
        signature = []
        for path in self.watched_files():
            try:
                stat = path.stat()
            except OSError:
                continue
            rel = path.relative_to(self.project_root).as_posix()
            signature.append((rel, stat.st_mtime_ns, stat.st_size))
        return tuple(signature) or None


class _SourceWatcher(FileSystemEventHandler):
    """Triggers a rebuild for changes to content, data, or folio.yaml."""

    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def is_relevant(self, path: Path) -> bool:
        for generated in (self.server.output_dir, self.server.staging_dir):
            if path == generated or generated in path.parents:
                return False
        if path.parent == self.server.project_root:
            return path.name == CONFIG_FILENAME
        return True

    def on_any_event(self, event):
        if not event.is_directory and self.is_relevant(Path(event.src_path)):
            self.server.rebuild(self.include_drafts)
