"""Request routing, tracing and logging for the HTTP server."""

from __future__ import annotations

import json
import logging
import platform
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import urlsplit

LOGGER_NAME = "opskit.httpserver"
JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
REQUEST_ID_HEADER = "X-Request-ID"
UNKNOWN_REQUEST_ID = "unknown"
VERSION = "1.0.0"


def _decimal(value: int, digits: int) -> str:
    whole, fraction = divmod(value, 10**digits)
    text = str(whole)
    if fraction:
        text += "." + str(fraction).rjust(digits, "0").rstrip("0")
    return text


def _go_duration(seconds: float) -> str:
    """Format a span of seconds like 1.5ms, 2m3.5s or 1h0m0s."""
    nanos = round(seconds * 1_000_000_000)
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos == 0:
        return "0s"
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_decimal(nanos, 3)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_decimal(nanos, 6)}ms"
    total_seconds, fraction = divmod(nanos, 1_000_000_000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    second_text = _decimal(secs * 1_000_000_000 + fraction, 9)
    if hours:
        return f"{sign}{hours}h{minutes}m{second_text}s"
    if minutes:
        return f"{sign}{minutes}m{second_text}s"
    return f"{sign}{second_text}s"


def _rfc3339(moment: datetime | None = None) -> str:
    stamp = (moment or datetime.now()).astimezone().isoformat(timespec="seconds")
    if stamp.endswith("+00:00"):
        stamp = stamp[: -len("+00:00")] + "Z"
    return stamp


@dataclass
class Response:
    """An HTTP response produced by the application."""

    status: int
    body: str
    content_type: str = JSON_CONTENT_TYPE
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def payload(self) -> bytes:
        return self.body.encode("utf-8")


def _internal_error() -> Response:
    return Response(500, "Internal Server Error", TEXT_CONTENT_TYPE)


def _json(status: int, document: dict[str, Any]) -> Response:
    return Response(status, json.dumps(document, indent=2, ensure_ascii=False))


@dataclass
class RequestLogger:
    """Writes tagged request, info and error lines to a standard logger."""

    level: str = "info"
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(LOGGER_NAME))

    def log_info(self, request_id: str, message: str) -> None:
        self.logger.info("[INFO] ID=%s | %s", request_id, message)

    def log_error(self, request_id: str, message: str, error: object) -> None:
        self.logger.error("[ERROR] ID=%s | %s | Error: %s", request_id, message, error)

    def log_request(
        self,
        request_id: str,
        method: str,
        uri: str,
        status: int,
        duration: float,
        remote_ip: str,
        user_agent: str,
        size: int,
    ) -> None:
        self.logger.info(
            "[REQUEST] ID=%s | %s %s | Status=%d | Duration=%s | IP=%s | UserAgent=%s | Size=%d bytes",
            request_id,
            method,
            uri,
            status,
            _go_duration(duration),
            remote_ip,
            user_agent,
            size,
        )


def route(path: str, uri: str, request_id: str, logger: RequestLogger, started_at: datetime) -> Response:
    """Answer a request for one of the known endpoints, or 404."""
    match path:
        case "/":
            logger.log_info(request_id, "Handling root endpoint")
            return _json(
                200,
                {
                    "message": "Welcome to FastHTTP Server",
                    "request_id": request_id,
                    "timestamp": _rfc3339(),
                    "version": VERSION,
                },
            )
        case "/health":
            logger.log_info(request_id, "Health check requested")
            return _json(
                200,
                {"status": "healthy", "request_id": request_id, "timestamp": _rfc3339()},
            )
        case "/api/v1/status":
            logger.log_info(request_id, "Status endpoint requested")
            uptime = (datetime.now(started_at.tzinfo) - started_at).total_seconds()
            return _json(
                200,
                {
                    "server": "fasthttp",
                    "uptime": _go_duration(uptime),
                    "request_id": request_id,
                    "timestamp": _rfc3339(),
                    "python_version": platform.python_version(),
                    "memory_usage": "calculated_in_production",
                },
            )
        case _:
            logger.log_info(request_id, f"404 Not Found: {uri}")
            return _json(
                404,
                {
                    "error": "Not Found",
                    "message": "The requested resource was not found",
                    "request_id": request_id,
                    "timestamp": _rfc3339(),
                },
            )


class Application:
    """Traces each request with an ID, routes it and recovers from failures."""

    def __init__(self, logger: RequestLogger, started_at: datetime) -> None:
        self.logger = logger
        self.started_at = started_at

    def handle(self, method: str, uri: str, remote_ip: str = "", user_agent: str = "") -> Response:
        began = time.perf_counter()
        request_id = str(uuid.uuid4())
        self.logger.log_info(request_id, f"Incoming request: {method} {uri} from {remote_ip}")
        try:
            response = route(urlsplit(uri).path or "/", uri, request_id, self.logger, self.started_at)
        except Exception as exc:  # any handler failure becomes a 500
            self.logger.log_error(request_id, "Panic recovered", f"panic: {exc}")
            response = _internal_error()
        response.headers[REQUEST_ID_HEADER] = request_id
        self.logger.log_request(
            request_id,
            method,
            uri,
            response.status,
            time.perf_counter() - began,
            remote_ip,
            user_agent,
            len(response.payload),
        )
        return response