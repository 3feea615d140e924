"""Structured logging for divide-it.

Every module logs through ``get_logger(__name__)`` so records land under the
``divide_it`` root logger. Verbosity is controlled by the CLI flags, and
``extra=`` fields are rendered as a trailing context block (text) or a
``context`` object (JSON).

Request-scoped fields (request id, asset id) are bound with ``LogContext``
and appear on every record logged through a divide-it logger inside the
block.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any

ROOT_LOGGER = "divide_it"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}

_bound_fields: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "divide_it_log_fields", default={}
)


class LogLevel(IntEnum):
    """Log verbosity levels."""

    QUIET = 0  # errors only
    NORMAL = 1  # plus warnings
    VERBOSE = 2  # plus per-stage progress
    DEBUG = 3  # plus planner attempts and ffmpeg commands

    @property
    def logging_level(self) -> int:
        return (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG)[self]


@dataclass
class LogConfig:
    """Configuration for logging.

    Attributes:
        level: Console verbosity; a log file always receives everything
        log_file: Optional path to log file
        json_format: One JSON object per line instead of text
        include_timestamp: Prefix records with the time
        include_context: Render ``extra`` fields
        color: ANSI colors, only honored when stderr is a terminal
    """

    level: LogLevel = LogLevel.NORMAL
    log_file: Path | None = None
    json_format: bool = False
    include_timestamp: bool = True
    include_context: bool = True
    color: bool = True


_RESET = "\033[0m"
_DIM = "\033[90m"
_LEVEL_COLORS = {
    logging.DEBUG: _DIM,
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m",
}


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to ``record`` through ``extra`` or bound context."""
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """Formatter producing either a colored text line or a JSON object."""

    def __init__(
        self,
        json_format: bool = False,
        include_timestamp: bool = True,
        include_context: bool = True,
        color: bool = True,
    ):
        super().__init__()
        self.json_format = json_format
        self.include_timestamp = include_timestamp
        self.include_context = include_context
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _color(self, text: str, code: str) -> str:
        if not self.color:
            return text
        return f"{code}{text}{_RESET}"

    def _format_json(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            data["timestamp"] = datetime.fromtimestamp(record.created).isoformat()
        if self.include_context:
            context = extra_fields(record)
            if context:
                # default=str keeps Paths and other objects printable
                data["context"] = json.loads(json.dumps(context, default=str))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data)

    def _format_text(self, record: logging.LogRecord) -> str:
        head = []
        if self.include_timestamp:
            stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
            head.append(self._color(stamp, _DIM))
        head.append(self._color(f"{record.levelname:<7}", _LEVEL_COLORS.get(record.levelno, "")))
        # "divide_it.overlay.compositor" -> "overlay.compositor"
        short_name = record.name.removeprefix(f"{ROOT_LOGGER}.")
        head.append(self._color(short_name, _DIM))

        line = f"{' '.join(head)}: {record.getMessage()}"
        if self.include_context:
            context = extra_fields(record)
            if context:
                pairs = " ".join(f"{key}={value}" for key, value in context.items())
                line = f"{line} {self._color(f'[{pairs}]', _DIM)}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class DivideItLogger(logging.Logger):
    """Logger that adds bound context to every record it emits.

    Precedence, lowest first: ``LogContext`` fields, ``with_context``
    fields, per-call ``extra``.
    """

    def __init__(self, name: str, level: int = logging.NOTSET):
        super().__init__(name, level)
        self._context: dict[str, Any] = {}

    def with_context(self, **context: Any) -> "DivideItLogger":
        """Return a logger that attaches ``context`` to every record."""
        bound = DivideItLogger(self.name, self.level)
        bound.parent = self.parent if self.parent is not None else logging.getLogger(ROOT_LOGGER)
        bound.handlers = self.handlers
        bound._context = {**self._context, **context}
        return bound

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
    ) -> None:
        fields = {**_bound_fields.get(), **self._context, **(extra or {})}
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=fields,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


_config: LogConfig = LogConfig()
_initialized: bool = False


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr


def configure_logging(config: LogConfig | None = None) -> None:
    """(Re)build the handlers of the ``divide_it`` logger tree.

    Args:
        config: Logging configuration; the current one is reused when omitted
    """
    global _config, _initialized

    if config:
        _config = config

    logging.setLoggerClass(DivideItLogger)
    console_level = _config.level.logging_level

    root = logging.getLogger(ROOT_LOGGER)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(console_level)

    console = _StderrHandler(console_level)
    console.setFormatter(
        StructuredFormatter(
            json_format=_config.json_format,
            include_timestamp=_config.include_timestamp,
            include_context=_config.include_context,
            color=_config.color and sys.stderr.isatty(),
        )
    )
    root.addHandler(console)

    if _config.log_file:
        log_file = Path(_config.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter(json_format=_config.json_format, color=False))
        root.addHandler(file_handler)
        root.setLevel(logging.DEBUG)

    _initialized = True


def get_logger(name: str) -> DivideItLogger:
    """Logger for a divide-it module, configuring logging on first use."""
    if not _initialized:
        configure_logging()

    logger = logging.getLogger(name)
    if not isinstance(logger, DivideItLogger):
        # Created before our logger class was installed
        wrapped = DivideItLogger(name)
        wrapped.parent = logger
        return wrapped
    return logger


def set_verbosity(level: LogLevel) -> None:
    """Change console verbosity."""
    _config.level = LogLevel(level)
    configure_logging(_config)


def enable_file_logging(log_file: Path, json_format: bool | None = None) -> None:
    """Also write every record, debug included, to ``log_file``.

    Args:
        log_file: Path to log file
        json_format: Switch the output format as well, when given
    """
    _config.log_file = Path(log_file)
    if json_format is not None:
        _config.json_format = json_format
    configure_logging(_config)


class LogContext:
    """Bind fields to every divide-it log record inside a block.

    Blocks nest; inner fields win. The binding is a context variable, so
    concurrent requests on different threads or tasks do not see each
    other's fields.

    Example:
        with LogContext(request_id="3f2a9c1e", asset_id="talk"):
            logger.info("Planning windows")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "LogContext":
        self._token = _bound_fields.set({**_bound_fields.get(), **self.fields})
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        if self._token is not None:
            _bound_fields.reset(self._token)
            self._token = None


def log_operation_start(logger: logging.Logger, operation: str, **context: Any) -> None:
    logger.info(f"Starting: {operation}", extra=context)


def log_operation_complete(
    logger: logging.Logger,
    operation: str,
    duration: float | None = None,
    **context: Any,
) -> None:
    """Log that ``operation`` finished, with its elapsed time when known."""
    if duration is not None:
        context["elapsed_seconds"] = round(duration, 2)
    logger.info(f"Completed: {operation}", extra=context)


def log_operation_failed(
    logger: logging.Logger,
    operation: str,
    error: Exception,
    **context: Any,
) -> None:
    """Log a failed operation with the error type and message attached."""
    context["error_type"] = type(error).__name__
    context["error_message"] = str(error)
    logger.error(f"Failed: {operation}", extra=context)
