"""Logging configuration using structlog for structured logging.

structlog events are routed through the standard library so that one set of
handlers serves both. The terminal gets a colored, filtered view on stderr
(stdout belongs to command output such as ``--json``); an optional rotating
file gets every event as JSON.
"""

import logging
import sys
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer
from structlog.stdlib import LoggerFactory, add_log_level, add_logger_name

LOG_FILE_NAME = "social-card-generator.log"

# Pipeline milestones shown on the terminal without --verbose
USER_FACING_EVENTS: frozenset[str] = frozenset(
    {
        "generation_started",
        "generation_completed",
        "generation_cancelled",
        "generation_failed",
        "modification_completed",
        "design_batch_count_mismatch",
        "config_warning",
    }
)

# Fields printed first on a console line, in this order
_LEADING_FIELDS = ("step", "design_number", "model", "provider")
_RESERVED_FIELDS = frozenset(
    {"logger", "level", "event", "timestamp", "exception", "_formatted"}
)


def _level_number(name: str | int) -> int:
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


@dataclass(slots=True, frozen=True)
class EventRateLimit:
    """At most ``limit`` occurrences of an event per ``per_seconds`` window."""

    limit: int
    per_seconds: float


class ConsoleNoiseFilter:
    """Structlog processor that keeps chatty loggers and events off the terminal.

    ``module_floors`` maps a logger-name prefix to the lowest level shown for
    it. ``rate_limits`` caps repetitive events such as streamed chunks and
    retry attempts within a sliding window.
    """

    def __init__(
        self,
        module_floors: Mapping[str, str] | None = None,
        rate_limits: Mapping[str, EventRateLimit] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.module_floors = {
            prefix: _level_number(level) for prefix, level in (module_floors or {}).items()
        }
        self.rate_limits = dict(rate_limits or {})
        self._seen: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _below_floor(self, logger_name: str, level: int) -> bool:
        return any(
            logger_name.startswith(prefix) and level < floor
            for prefix, floor in self.module_floors.items()
        )

    def _over_limit(self, event: str) -> bool:
        limit = self.rate_limits.get(event)
        if limit is None:
            return False
        now = self._clock()
        with self._lock:
            seen = self._seen.setdefault(event, deque())
            while seen and now - seen[0] > limit.per_seconds:
                seen.popleft()
            if len(seen) >= limit.limit:
                return True
            seen.append(now)
        return False

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        level = event_dict.get("level", logging.INFO)
        level = _level_number(level) if isinstance(level, (str, int)) else logging.INFO
        if self._below_floor(event_dict.get("logger") or "", level):
            raise structlog.DropEvent
        event = event_dict.get("event")
        if isinstance(event, str) and self._over_limit(event):
            raise structlog.DropEvent
        return event_dict


class UserFacingConsoleFilter(logging.Filter):
    """Pass only pipeline milestones and errors to the terminal, unless verbose."""

    def __init__(self, verbose: bool = False) -> None:
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        if self.verbose or record.levelno >= logging.ERROR:
            return True
        message = record.getMessage()
        return any(event in message for event in USER_FACING_EVENTS)


CONSOLE_MODULE_FLOORS: dict[str, str] = {
    "social_card_generator.providers.factory": "WARNING",
}

CONSOLE_RATE_LIMITS: dict[str, EventRateLimit] = {
    "stream_chunk_received": EventRateLimit(5, 10.0),
    "retry_attempt": EventRateLimit(10, 60.0),
}

_configured = False
_handlers: list[logging.Handler] = []


def _inline_fields(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Render extra fields as ``key=value`` pairs in ``_formatted``."""
    leading = [
        f"{key}={event_dict[key]}" for key in _LEADING_FIELDS if event_dict.get(key)
    ]
    rest = [
        f"{key}={value}"
        for key, value in event_dict.items()
        if key not in _RESERVED_FIELDS
        and key not in _LEADING_FIELDS
        and value not in (None, "")
    ]
    parts = leading + rest
    event_dict["_formatted"] = " | " + " ".join(parts) if parts else ""
    return event_dict


def _shared_processors() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _console_handler(
    log_level: str, verbose: bool, noise_filter: bool
) -> logging.Handler:
    chain = _shared_processors()
    if noise_filter:
        chain.append(ConsoleNoiseFilter(CONSOLE_MODULE_FLOORS, CONSOLE_RATE_LIMITS))
    chain.append(_inline_fields)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_number(log_level))
    handler.addFilter(UserFacingConsoleFilter(verbose=verbose))
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
            foreign_pre_chain=chain,
        )
    )
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    # 10MB per file, 5 backups
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=JSONRenderer(),
            foreign_pre_chain=[*_shared_processors(), _inline_fields],
        )
    )
    return handler


def configure_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    log_file: Path | None = None,
    verbose: bool = False,
    enable_console_noise_filter: bool = True,
) -> None:
    """Configure structlog logging.

    Safe to call repeatedly: handlers installed by a previous call are
    removed first.

    Args:
        log_level: Minimum console log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for the JSON log file
        log_file: Specific log file path (overrides log_dir)
        verbose: If True, show all log events on the terminal
        enable_console_noise_filter: Toggle console-side noise suppression
    """
    global _configured

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    _handlers.append(_console_handler(log_level, verbose, enable_console_noise_filter))
    log_path = log_file or (log_dir / LOG_FILE_NAME if log_dir is not None else None)
    if log_path is not None:
        _handlers.append(_file_handler(log_path))
    for handler in _handlers:
        root_logger.addHandler(handler)

    _configured = True
    get_logger(__name__).debug(
        "logging_configured",
        console_level=log_level,
        log_file=str(log_path) if log_path else None,
        verbose=verbose,
    )


def get_logger(name: str) -> Any:
    """Get a structlog logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
