"""Structured logging: swappable formatter x destination via config.

Architecture:
    LogFormatter   HOW records are structured (structlog, stdlib)
    LogDestination WHERE output goes (stderr, JSONL file)

    setup_logging(config) composes them: formatter.setup() returns a
    logging.Formatter, destination.create_handler() returns a
    logging.Handler, the handler gets the formatter, and it's attached to
    the root logger. Both formatters bridge stdlib, so plain
    logging.getLogger() callers get the same output.

Swapping:
    STATSD_SCHEMA_LOG_FORMATTER=structlog   (default)
    STATSD_SCHEMA_LOG_DESTINATION=stderr    (default)

    Or register your own:
        from statsd_schema.logging import register_destination
        register_destination("syslog", MySyslogDestination)
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from statsd_schema.config import SchemaConfig


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class LogFormatter(Protocol):
    """Strategy: how log records are structured.

    get_logger() returns a logger that accepts structlog-style
    ``logger.info("event", key=value)`` calls.
    """

    def setup(self, config: SchemaConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **kwargs: Any) -> Any: ...


@runtime_checkable
class LogDestination(Protocol):
    """Strategy: where formatted log output is shipped."""

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler: ...

    def shutdown(self) -> None: ...


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructlogFormatter:
    """structlog processor pipeline + stdlib bridge."""

    def setup(self, config: SchemaConfig) -> logging.Formatter:
        import structlog

        shared_processors: list = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]

        if config.log_format == "json":
            renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *shared_processors,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        return structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*shared_processors, _add_structured_fields],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        import structlog

        return structlog.get_logger(name, **kwargs)


def _add_structured_fields(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Lift kwargs logged through _StructuredStdlibLogger into the event dict."""
    structured = getattr(event_dict.get("_record"), "_structured", None)
    for key, value in (structured or {}).items():
        event_dict.setdefault(key, value)
    return event_dict


class StdlibFormatter:
    """Pure stdlib logging; console or JSON lines."""

    def setup(self, config: SchemaConfig) -> logging.Formatter:
        if config.log_format == "json":
            return _StdlibJsonFormatter()
        return _StdlibConsoleFormatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return _StructuredStdlibLogger(logging.getLogger(name))


class _StdlibJsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        d: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if hasattr(record, "_structured"):
            d.update(record._structured)  # type: ignore[attr-defined]
        if record.exc_info and record.exc_info[1]:
            d["exception"] = self.formatException(record.exc_info)
        return json.dumps(d, default=str)


class _StdlibConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        structured = getattr(record, "_structured", None)
        if structured:
            return _render_fields(line, structured)
        return line


def _render_fields(line: str, fields: dict[str, Any]) -> str:
    return line + " " + " ".join(f"{k}={v}" for k, v in fields.items())


class _StructuredStdlibLogger:
    """Gives stdlib loggers a structlog-like kwargs API.

    logger.warning("schema.validation.warning", metric="web.total") works
    whether or not structlog has been configured.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, event: str, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        if exc_info is True:
            exc_info = sys.exc_info()
        message = event
        if kwargs and not self._logger.hasHandlers():
            # logging.lastResort prints the bare message only
            message = _render_fields(event, kwargs)
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown)",
            0,
            message,
            (),
            exc_info or None,
        )
        record._structured = kwargs  # type: ignore[attr-defined]
        self._logger.handle(record)

    def debug(self, event: str, **kw: Any) -> None:
        self._log(logging.DEBUG, event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log(logging.INFO, event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log(logging.WARNING, event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log(logging.ERROR, event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        kw.setdefault("exc_info", True)
        self._log(logging.ERROR, event, **kw)


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


class StderrDestination:
    """Write to stderr. Default."""

    def __init__(self, config: SchemaConfig | None = None) -> None:
        pass

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        return handler

    def shutdown(self) -> None:
        pass


class JsonlFileDestination:
    """Append to a JSONL file."""

    def __init__(self, config: SchemaConfig) -> None:
        self._path = Path(config.log_path or "/tmp/statsd_schema.jsonl")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handler: logging.Handler | None = None

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.FileHandler(str(self._path), mode="a", encoding="utf-8")
        handler.setFormatter(formatter)
        self._handler = handler
        return handler

    def shutdown(self) -> None:
        if self._handler is not None:
            self._handler.close()


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------

_FORMATTERS: dict[str, type] = {
    "structlog": StructlogFormatter,
    "stdlib": StdlibFormatter,
}

_DESTINATIONS: dict[str, type] = {
    "stderr": StderrDestination,
    "jsonl": JsonlFileDestination,
}


def register_formatter(name: str, cls: type) -> None:
    """Register a custom log formatter. Call before setup_logging()."""
    _FORMATTERS[name] = cls


def register_destination(name: str, cls: type) -> None:
    """Register a custom log destination (constructed with the config)."""
    _DESTINATIONS[name] = cls


# ---------------------------------------------------------------------------
# Module state
# ---------------------------------------------------------------------------

_active_formatter: LogFormatter | None = None
_active_destination: LogDestination | None = None


def setup_logging(config: SchemaConfig) -> None:
    """Compose formatter x destination from config and wire to the root logger."""
    global _active_formatter, _active_destination

    formatter_cls = _FORMATTERS.get(config.log_formatter)
    if formatter_cls is None:
        raise ValueError(
            f"Unknown log formatter: {config.log_formatter!r}. "
            f"Available: {list(_FORMATTERS)}. "
            f"Register custom formatters with register_formatter()."
        )

    dest_cls = _DESTINATIONS.get(config.log_destination)
    if dest_cls is None:
        raise ValueError(
            f"Unknown log destination: {config.log_destination!r}. "
            f"Available: {list(_DESTINATIONS)}. "
            f"Register custom destinations with register_destination()."
        )

    shutdown_logging()

    formatter = formatter_cls()
    destination = dest_cls(config)

    log_formatter = formatter.setup(config)
    handler = destination.create_handler(log_formatter)

    # Only replace our own handler; keep external ones (pytest caplog etc.)
    handler._statsd_schema_managed = True  # type: ignore[attr-defined]
    root_logger = logging.getLogger()
    root_logger.handlers = [
        h for h in root_logger.handlers if not getattr(h, "_statsd_schema_managed", False)
    ]
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    _active_formatter = formatter
    _active_destination = destination


def get_logger(name: str = "statsd_schema", **kwargs: Any) -> Any:
    """Get a logger from the active formatter.

    Falls back to a _StructuredStdlibLogger before setup_logging() is called,
    so keyword arguments work even pre-configuration.
    """
    if _active_formatter is not None:
        return _active_formatter.get_logger(name, **kwargs)
    return _StructuredStdlibLogger(logging.getLogger(name))


def shutdown_logging() -> None:
    """Close the active destination and detach our handler."""
    global _active_formatter, _active_destination
    if _active_destination is not None:
        _active_destination.shutdown()
    root_logger = logging.getLogger()
    root_logger.handlers = [
        h for h in root_logger.handlers if not getattr(h, "_statsd_schema_managed", False)
    ]
    _active_formatter = None
    _active_destination = None
