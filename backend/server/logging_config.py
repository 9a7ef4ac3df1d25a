"""Logging setup.

- Human-readable text by default, single-line JSON when LOG_FORMAT=json
- Request id + access line for every HTTP request
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request

from server.config import LOG_FORMAT, LOG_LEVEL

access_logger = logging.getLogger("adapta.access")


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "request_id"):
            entry["request_id"] = record.request_id
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def init_logging(level: str = LOG_LEVEL, fmt: str = LOG_FORMAT) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root.addHandler(handler)

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def install_request_logging(app: FastAPI) -> None:
    """Attach a request id to every request and log one access line per response."""

    @app.middleware("http")
    async def _log_request(request: Request, call_next):
        request_id = uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        started = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        access_logger.info(
            "%s %s %s %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"request_id": request_id},
        )
        return response
