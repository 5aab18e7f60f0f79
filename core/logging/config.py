import json
import logging
import os
import queue
import sys
import threading
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import structlog

from core.logging.processors import add_service_context, redact_sensitive_data, round_timings

LOG_DIR = Path(os.getenv("KITTY_CREEK_LOG_DIR", "logs"))

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = {"discord": logging.WARNING, "discord.gateway": logging.WARNING, "aiohttp.access": logging.WARNING}

_configured = False
_config_lock = threading.Lock()
_listeners: list[QueueListener] = []

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"

# Shown right after the event name, in this order, when present.
LEADING_KEYS = ("user_id", "attempt_id", "command")
HIDDEN_KEYS = frozenset({"event", "logger", "level", "timestamp", "service"})


class ConsoleFormatter(logging.Formatter):
    """One colored line per structlog JSON record; falls back to the raw message."""

    def __init__(self, color: bool = True, max_extra: int = 6):
        super().__init__()
        self.color = color
        self.max_extra = max_extra

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        try:
            data = json.loads(msg)
        except (json.JSONDecodeError, TypeError):
            return msg
        if not isinstance(data, dict):
            return msg

        level = str(data.get("level", record.levelname)).upper()
        timestamp = str(data.get("timestamp", ""))[:19].replace("T", " ")
        name = data.get("logger", record.name)

        keys = [k for k in LEADING_KEYS if k in data]
        keys += [k for k in data if k not in HIDDEN_KEYS and k not in LEADING_KEYS]
        extra = " ".join(f"{k}={data[k]}" for k in keys[:self.max_extra])

        tag = f"[{level}]"
        if self.color:
            tag = f"{LEVEL_COLORS.get(level, '')}{tag}{RESET}"
        line = f"{timestamp} {tag} {name}: {data.get('event', msg)}"
        return f"{line} {extra}" if extra else line


class JSONLineFormatter(logging.Formatter):
    """structlog already rendered JSON; foreign records get wrapped so the file stays one object per line."""

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if msg.startswith("{"):
            return msg
        return json.dumps({
            "event": msg,
            "logger": record.name,
            "level": record.levelname.lower(),
            "service": "kittycreek",
        }, ensure_ascii=False)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if os.getenv("KITTY_CREEK_LOG_FORMAT", "pretty").lower() == "json":
        handler.setFormatter(JSONLineFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(color=sys.stdout.isatty()))
    handler.setLevel(level)
    return handler


def _file_handler(level: int, log_file: Optional[str]) -> logging.Handler:
    log_path = Path(log_file) if log_file else LOG_DIR / "kittycreek.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=log_path,
        when="midnight",
        backupCount=14,
        encoding="utf-8",
    )
    handler.setFormatter(JSONLineFormatter())
    handler.setLevel(level)
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = True,
) -> None:
    """Route structlog through stdlib logging, with handlers on a background queue listener.

    Safe to call more than once; later calls only change the level, so an
    explicit level still applies after a module-level ``get_logger`` configured
    the defaults.
    """
    global _configured

    with _config_lock:
        if _configured:
            _apply_level(level)
            return

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                add_service_context,
                round_timings,
                redact_sensitive_data,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(ensure_ascii=False),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        _apply_level(level)

        handlers: list[logging.Handler] = []
        if enable_file:
            handlers.append(_file_handler(level, log_file))
        if enable_console:
            handlers.append(_console_handler(level))
        if not handlers:
            return

        log_queue: queue.Queue[Any] = queue.Queue(-1)
        listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
        listener.start()
        _listeners.append(listener)
        root_logger.addHandler(QueueHandler(log_queue))


def _apply_level(level: int) -> None:
    logging.getLogger().setLevel(level)
    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(level, quiet_level))
    for listener in _listeners:
        for handler in listener.handlers:
            handler.setLevel(level)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush and stop queue listeners."""
    for listener in _listeners:
        listener.stop()
    _listeners.clear()
