from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections import Counter, defaultdict
from datetime import datetime, timezone

from flask import g, has_request_context, request


REQUEST_ID_HEADER = "X-Request-Id"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line: level, logger, message, request data and extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": current_request_id(),
        }
        if has_request_context():
            entry["method"] = request.method
            entry["path"] = request.path
            if request.url_rule is not None:
                entry["route"] = request.url_rule.rule

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or key in entry:
                continue
            entry[key] = value

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_json_logging(app) -> None:
    if not app.config.get("LOG_JSON", True):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))
    # Flask's own handler would print every line twice.
    app.logger.handlers = []
    app.logger.propagate = True


def ensure_request_id() -> str:
    if not getattr(g, "request_id", None):
        g.request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip() or str(uuid.uuid4())
    return g.request_id


def current_request_id(default: str = "n/a") -> str:
    if has_request_context():
        return getattr(g, "request_id", None) or default
    return default


class MetricsRegistry:
    """In-process counters exposed on ``/health``; reset per test."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._totals = Counter()
            self._routes = defaultdict(lambda: {"count": 0, "errors": 0, "total_ms": 0.0})

    def observe_http(self, method: str, route: str, status_code: int, elapsed_ms: float) -> None:
        failed = status_code >= 500
        with self._lock:
            self._totals["requests_total"] += 1
            self._totals["errors_total"] += int(failed)
            stats = self._routes[f"{method} {route}"]
            stats["count"] += 1
            stats["errors"] += int(failed)
            stats["total_ms"] += max(0.0, elapsed_ms)

    def observe_notification(self, *, delivered: bool) -> None:
        with self._lock:
            self._totals["notifications_sent_total" if delivered else "notifications_failed_total"] += 1

    def snapshot(self) -> dict:
        with self._lock:
            snapshot = {
                name: self._totals[name]
                for name in (
                    "requests_total",
                    "errors_total",
                    "notifications_sent_total",
                    "notifications_failed_total",
                )
            }
            snapshot["routes"] = {
                key: {
                    "count": stats["count"],
                    "errors": stats["errors"],
                    "avg_ms": round(stats["total_ms"] / stats["count"], 2),
                }
                for key, stats in self._routes.items()
            }
        return snapshot


_METRICS = MetricsRegistry()


def mark_request_start() -> None:
    g.request_started_at = time.perf_counter()


def observe_response(response):
    started = getattr(g, "request_started_at", None)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started else 0.0
    route = request.url_rule.rule if request.url_rule is not None else request.path
    _METRICS.observe_http(request.method, route, response.status_code, elapsed_ms)
    response.headers[RESPONSE_TIME_HEADER] = f"{elapsed_ms:.2f}"
    return response


def observe_notification(*, delivered: bool) -> None:
    _METRICS.observe_notification(delivered=delivered)


def metrics_snapshot() -> dict:
    return _METRICS.snapshot()


def reset_metrics_for_tests() -> None:
    _METRICS.reset()
