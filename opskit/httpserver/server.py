"""HTTP server with console and file logging and graceful shutdown."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from opskit.httpserver.handlers import (
    LOGGER_NAME,
    UNKNOWN_REQUEST_ID,
    Application,
    RequestLogger,
    Response,
    _go_duration,
    _internal_error,
)

READ_TIMEOUT = 30
MAX_REQUEST_BODY_SIZE = 10 * 1024 * 1024
_CLOCK_FORMAT = "%Y-%m-%d %H:%M:%S"


class _LineFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created).strftime("%Y/%m/%d %H:%M:%S.%f")


@dataclass
class LogSession:
    """An open log file mirrored to the console; close() writes the summary."""

    path: Path
    started_at: datetime
    logger: logging.Logger
    handlers: list[logging.Handler] = field(default_factory=list)
    closed: bool = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        stopped = datetime.now(self.started_at.tzinfo)
        self.logger.info("[SYSTEM] Server stopped at %s", stopped.strftime(_CLOCK_FORMAT))
        self.logger.info(
            "[SYSTEM] Total uptime: %s", _go_duration((stopped - self.started_at).total_seconds())
        )
        self.logger.info("[SYSTEM] Logging ended")
        for handler in self.handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self.logger.propagate = True

    def __enter__(self) -> LogSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def setup_logging(logs_dir: str | os.PathLike[str] = "logs", now: datetime | None = None) -> LogSession:
    """Start logging to the console and to a timestamped file in logs_dir."""
    directory = Path(logs_dir)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError(f"failed to create logs directory: {exc}") from exc
    started = now or datetime.now()
    path = directory / f"server_{started:%Y-%m-%d_%H-%M-%S}.log"
    try:
        file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    except OSError as exc:
        raise OSError(f"failed to create log file: {exc}") from exc

    logger = logging.getLogger(LOGGER_NAME)
    session = LogSession(path, started, logger, [logging.StreamHandler(sys.stdout), file_handler])
    formatter = _LineFormatter("%(asctime)s %(message)s")
    for handler in session.handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.info("[SYSTEM] Logging started - Console and File: %s", path)
    return session


class _RequestHandler(BaseHTTPRequestHandler):
    timeout = READ_TIMEOUT
    protocol_version = "HTTP/1.1"

    def _send(self, response: Response) -> None:
        payload = response.payload
        self.send_response(response.status)
        self.send_header("Content-Type", response.content_type)
        self.send_header("Content-Length", str(len(payload)))
        for name, value in response.headers.items():
            self.send_header(name, value)
        if self.close_connection:
            self.send_header("Connection", "close")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    def _dispatch(self) -> None:
        application = self.server.application
        declared = self.headers.get("Content-Length")
        try:
            size = int(declared) if declared else 0
        except ValueError:
            size = -1
        if not 0 <= size <= MAX_REQUEST_BODY_SIZE:
            application.logger.log_error(
                UNKNOWN_REQUEST_ID, "Server error", "body size exceeds the given limit"
            )
            self.close_connection = True
            self._send(_internal_error())
            return
        if size:
            self.rfile.read(size)
        self._send(
            application.handle(
                self.command, self.path, self.client_address[0], self.headers.get("User-Agent", "")
            )
        )

    do_GET = do_HEAD = do_POST = do_PUT = do_DELETE = do_PATCH = do_OPTIONS = _dispatch

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        # Request lines are already logged by the application; keep the raw ones at debug level.
        logging.getLogger(LOGGER_NAME).debug("[HTTP] %s", format % args)


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], application: Application) -> None:
        self.application = application
        super().__init__(address, _RequestHandler)


def serve(port: int = 8080, log_level: str = "info", logs_dir: str | os.PathLike[str] = "logs") -> None:
    """Run the server until SIGINT or SIGTERM, then shut it down."""
    try:
        session = setup_logging(logs_dir)
    except OSError as exc:
        raise OSError(f"Failed to setup logging: {exc}") from exc

    with session:
        log = session.logger
        application = Application(RequestLogger(level=log_level, logger=log), session.started_at)
        address = f":{port}"
        for line in (
            f"Starting FastHTTP server at {session.started_at.strftime(_CLOCK_FORMAT)}",
            f"Server port: {port}",
            f"Logging level: {log_level}",
            f"Process ID: {os.getpid()}",
            "Available endpoints:",
            "  GET  /           - Root endpoint",
            "  GET  /health     - Health check",
            "  GET  /api/v1/status - Server status",
            f"Server listening on {address}",
        ):
            log.info("[SERVER] %s", line)

        try:
            server = _HTTPServer(("", port), application)
        except OSError as exc:
            log.error("[SERVER] Failed to start server: %s", exc)
            raise

        stop = threading.Event()
        previous = {
            sig: signal.signal(sig, lambda *_: stop.set()) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        threading.Thread(target=server.serve_forever, name="http-server", daemon=True).start()
        try:
            while not stop.wait(0.5):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            log.info("[SERVER] Received shutdown signal at %s", datetime.now().strftime(_CLOCK_FORMAT))
            log.info("[SERVER] Shutting down server...")
            try:
                server.shutdown()
                server.server_close()
            except OSError as exc:
                log.error("[SERVER] Error during shutdown: %s", exc)
            else:
                log.info("[SERVER] Server shutdown completed successfully")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser with its server command."""
    parser = argparse.ArgumentParser(
        prog="fasthttp-server",
        description="A high-performance HTTP server featuring request tracing and comprehensive logging",
    )
    commands = parser.add_subparsers(dest="command", title="commands")
    server = commands.add_parser(
        "server",
        help="Start the FastHTTP server",
        description="Start the FastHTTP server with comprehensive request logging and tracing capabilities",
    )
    server.add_argument("-p", "--port", type=int, default=8080, help="Server port")
    server.add_argument("-l", "--log-level", default="info", help="Log level (debug, info, warn, error)")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command != "server":
        parser.print_help()
        return 0
    try:
        serve(args.port, args.log_level)
    except OSError as exc:
        print(f"Error executing command: {exc}", file=sys.stderr)
        return 1
    return 0