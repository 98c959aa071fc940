"""Logging, metrics, and health tooling for poke_team_builder."""
from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .service import PokedexService

__all__ = [
    "configure_logging",
    "get_logger",
    "metrics",
    "metrics_snapshot",
    "render_metrics",
    "health_snapshot",
    "generate_trace_id",
]


_STANDARD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())
_LOGGER_NAME = "poke_team_builder"
_CONFIGURED = False
_LOCK = threading.Lock()


class StructuredLogFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Extra fields go under ``context``; a ``trace_id`` extra is lifted to the
    top level so CLI and API lines for one request can be grepped together.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        event = getattr(record, "event", None) or "log"
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": event,
            "message": message,
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in {"message", "asctime", "event"}
        }
        trace_id = extras.pop("trace_id", None)
        if trace_id:
            payload["trace_id"] = trace_id
        if extras:
            payload["context"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Configure structured logging once and return the package logger."""

    global _CONFIGURED
    with _LOCK:
        logger = logging.getLogger(_LOGGER_NAME)
        if not _CONFIGURED:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredLogFormatter())
            logger.addHandler(handler)
            logger.propagate = False
            _CONFIGURED = True
        if level is not None:
            logger.setLevel(level if isinstance(level, int) else logging.getLevelName(level.upper()))
        elif logger.level == logging.NOTSET:
            logger.setLevel(logging.INFO)
    return logging.getLogger(_LOGGER_NAME)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a child logger with structured configuration."""

    configure_logging()
    if name:
        if name == _LOGGER_NAME or name.startswith(f"{_LOGGER_NAME}."):
            return logging.getLogger(name)
        return logging.getLogger(f"{_LOGGER_NAME}.{name}")
    return logging.getLogger(_LOGGER_NAME)


class MetricsRegistry:
    """Thread-safe, in-process metrics collector with Prometheus rendering."""

    def __init__(self) -> None:
        self._metadata: Dict[str, Tuple[str, str]] = {}
        self._counters: Dict[str, float] = {}
        self._gauges: Dict[str, float] = {}
        self._summaries: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def register_counter(self, name: str, description: str) -> None:
        self._metadata[name] = ("counter", description)

    def register_gauge(self, name: str, description: str) -> None:
        self._metadata[name] = ("gauge", description)
        self._gauges.setdefault(name, 0.0)

    def register_summary(self, name: str, description: str) -> None:
        self._metadata[name] = ("summary", description)
        self._summaries.setdefault(name, [])

    def increment(self, name: str, amount: float = 1.0) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0.0) + amount

    def set_gauge(self, name: str, value: float) -> None:
        with self._lock:
            self._gauges[name] = value

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            bucket = self._summaries.setdefault(name, [])
            bucket.append(value)

    def counter(self, name: str) -> float:
        with self._lock:
            return self._counters.get(name, 0.0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
                "summaries": {key: list(values) for key, values in self._summaries.items()},
            }

    def render_prometheus(self) -> str:
        lines: List[str] = []
        snapshot = self.snapshot()
        for name, (metric_type, description) in self._metadata.items():
            lines.append(f"# HELP {name} {description}")
            lines.append(f"# TYPE {name} {metric_type}")
            if metric_type == "counter":
                value = snapshot["counters"].get(name, 0.0)
                lines.append(f"{name} {value}")
            elif metric_type == "gauge":
                value = snapshot["gauges"].get(name, 0.0)
                lines.append(f"{name} {value}")
            elif metric_type == "summary":
                values = snapshot["summaries"].get(name, [])
                count = float(len(values))
                total = float(sum(values))
                average = total / count if count else 0.0
                lines.append(f"{name}_count {count}")
                lines.append(f"{name}_sum {total}")
                lines.append(f"{name}_avg {average}")
        return "\n".join(lines) + "\n"


metrics = MetricsRegistry()
metrics.register_counter(
    "poke_team_builder_sync_fetched_total", "Records fetched and cached by bulk sync.")
metrics.register_counter(
    "poke_team_builder_sync_skipped_total", "Records skipped by bulk sync because they were cached.")
metrics.register_counter(
    "poke_team_builder_sync_failures_total", "Records that failed to fetch or persist during bulk sync.")
metrics.register_summary(
    "poke_team_builder_sync_duration_seconds", "Bulk sync run duration in seconds.")
metrics.register_counter(
    "poke_team_builder_index_builds_total", "Index rebuilds from the record artifacts.")
metrics.register_counter(
    "poke_team_builder_team_scores_total", "Team summaries computed.")
metrics.register_gauge(
    "poke_team_builder_index_entries", "Entries held by the in-memory index.")


def metrics_snapshot() -> Dict[str, Any]:
    """Return a simple dictionary snapshot of the in-process metrics."""

    return metrics.snapshot()


def render_metrics() -> str:
    """Render metrics in Prometheus exposition format."""

    return metrics.render_prometheus()


def _cache_status(service: "PokedexService") -> Dict[str, Any]:
    store = service.store
    return {
        "cache_dir": str(store.cache_dir),
        "cache_dir_exists": store.cache_dir.is_dir(),
        "index_loaded": service.index.is_loaded,
        "index_file_present": store.index_file.exists(),
        "record_count": sum(1 for path in store.iter_record_files() if path.stem.isdigit()),
        "sync_complete": service.is_sync_complete(),
    }


def health_snapshot(service: "PokedexService") -> Dict[str, Any]:
    """Return a structured health snapshot for the API health endpoint."""

    caches = _cache_status(service)
    status = "ok" if caches["cache_dir_exists"] else "degraded"
    return {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {"caches": caches},
        "metrics": metrics_snapshot(),
    }


def generate_trace_id() -> str:
    """Generate a short-lived trace identifier suitable for user feedback."""

    return uuid.uuid4().hex[:12]
