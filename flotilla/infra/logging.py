"""Logging setup: console output plus an optional JSON-lines run log."""

from __future__ import annotations

import json
import logging
import queue
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path

from flotilla.infra.config import Settings, load_settings

__all__ = [
    "JsonFormatter",
    "LoggingConfig",
    "configure_logging",
    "parse_event",
    "setup_logging",
    "stop_logging",
]

_QUEUE_LISTENER: QueueListener | None = None

_STANDARD_RECORD_FIELDS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    }
)

_EVENT_RE = re.compile(r"([a-z][a-z0-9_]*)(?=\s|$)")
_FIELD_RE = re.compile(r"(\w+)=('[^']*'|\"[^\"]*\"|\S+)")
_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d+\.\d+")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration."""

    level_name: str = "INFO"
    console_format: str = "text"
    file_path: str | None = None
    file_format: str = "json"


class JsonFormatter(logging.Formatter):
    """JSON formatter that lifts `event key=value` messages into typed fields.

    The leading bare word becomes `event`; numeric and boolean values are
    decoded. Fields passed through `extra=` are merged in and win on clashes.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": message,
        }
        event, fields = parse_event(message)
        if event is not None:
            payload["event"] = event
        fields.update(
            (k, v) for k, v in record.__dict__.items() if k not in _STANDARD_RECORD_FIELDS
        )
        if fields:
            payload["fields"] = fields
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def parse_event(message: str) -> tuple[str | None, dict[str, object]]:
    """Split `event key=value ...` into the event name and decoded fields."""
    match = _EVENT_RE.match(message)
    start = match.end() if match is not None else 0
    fields = {key: _decode_value(raw) for key, raw in _FIELD_RE.findall(message, start)}
    return (match.group(1) if match is not None else None), fields


def _decode_value(raw: str) -> object:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in {"'", '"'}:
        return raw[1:-1]
    if raw in {"True", "False"}:
        return raw == "True"
    if raw == "None":
        return None
    if _INT_RE.fullmatch(raw):
        return int(raw)
    if _FLOAT_RE.fullmatch(raw):
        return float(raw)
    return raw


def configure_logging(config: LoggingConfig) -> None:
    """Configure root logging; file output is streamed through a queue."""
    global _QUEUE_LISTENER

    stop_logging()

    level = getattr(logging, config.level_name.upper(), logging.INFO)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(_resolve_formatter(config.console_format))
    handlers: list[logging.Handler] = [console_handler]

    if config.file_path:
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, mode="a", encoding="utf-8", delay=True)
        file_handler.setFormatter(_resolve_formatter(config.file_format))
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    if len(handlers) == 1:
        root.addHandler(handlers[0])
        return

    log_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    root.addHandler(QueueHandler(log_queue))
    _QUEUE_LISTENER = QueueListener(log_queue, *handlers, respect_handler_level=True)
    _QUEUE_LISTENER.start()


def stop_logging() -> None:
    """Flush and stop the background file listener, if running."""
    global _QUEUE_LISTENER
    if _QUEUE_LISTENER is not None:
        _QUEUE_LISTENER.stop()
        _QUEUE_LISTENER = None


def setup_logging(settings: Settings | None = None) -> str | None:
    """Configure application logging from settings; return the run log path."""
    resolved = settings if settings is not None else load_settings()
    file_path = _resolve_run_log_file_path(resolved.log_dir)
    configure_logging(
        LoggingConfig(
            level_name=resolved.log_level,
            console_format=resolved.log_format,
            file_path=file_path,
            file_format="json",
        )
    )
    if file_path is not None:
        logging.getLogger(__name__).info("logging_file=%s", file_path)
    return file_path


def _resolve_run_log_file_path(log_dir: str | None) -> str | None:
    if not log_dir:
        return None
    base_dir = Path(log_dir)
    base_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
    return str(base_dir / f"flotilla_run_{stamp}.jsonl")


def _resolve_formatter(kind: str) -> logging.Formatter:
    if kind.strip().lower() == "json":
        return JsonFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
