"""Logging configuration for kibomigrate batches.

Every batch writes two sinks: a rotating JSON-lines file under the log
directory (one file per batch) and a coloured, human-readable console stream.
Structured fields are passed with ``extra=`` and end up as JSON keys in the
file and as ``key=value`` pairs on the console.
"""

import json
import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT_LOGGER_NAME = "kibomigrate"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
STANDARD_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
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
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
    "asctime",
}


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LogLevel":
        """Map a LOG_LEVEL string (pino-style names included) to a level."""
        if not value:
            return cls.INFO
        normalized = value.strip().upper()
        aliases = {"WARN": "WARNING", "FATAL": "CRITICAL", "TRACE": "DEBUG"}
        normalized = aliases.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return cls.INFO


@dataclass
class LoggingConfig:
    """Configuration for logging system."""

    level: LogLevel = LogLevel.INFO
    enable_file_logging: bool = True
    enable_console_logging: bool = True
    log_directory: str = "logs"
    log_filename: str = "kibomigrate.log"
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_colors: bool = True
    sensitive_data_patterns: List[str] = field(
        default_factory=lambda: [
            r"(shared_?secret|client_?secret|access_?token|password)=\S+",
            r"Bearer\s+\S+",
        ]
    )


def extract_extra(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the structured fields attached to a record."""
    extra = {}
    for key, value in record.__dict__.items():
        if key in STANDARD_RECORD_ATTRS or key.startswith("_"):
            continue
        extra[key] = value
    return extra


class SensitiveDataFilter(logging.Filter):
    """Filter to redact sensitive data from log messages."""

    def __init__(self, patterns: List[str]) -> None:
        super().__init__()
        self.patterns = patterns
        self.compiled_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._redact(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )

        return True

    def _redact(self, text: str) -> str:
        for pattern in self.compiled_patterns:
            text = pattern.sub("[REDACTED]", text)
        return text


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for the batch log file."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in extract_extra(record).items():
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        try:
            return json.dumps(log_data, default=str)
        except (TypeError, ValueError):
            return (
                f"{log_data['timestamp']} - {log_data['level']} - "
                f"{log_data['logger']} - {log_data['message']}"
            )


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support and inline structured fields."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self) -> bool:
        return (
            hasattr(sys.stdout, "isatty")
            and sys.stdout.isatty()
            and os.environ.get("TERM") != "dumb"
        )

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        fields = " ".join(f"{key}={value}" for key, value in extract_extra(record).items())
        message = record.getMessage()
        if fields:
            message = f"{message} {fields}"

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            formatted = f"{color}[{timestamp}] {record.levelname:<8}{reset} - {message}"
        else:
            formatted = f"[{timestamp}] {record.levelname:<8} - {message}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class LoggingManager:
    """Sets up the console and file handlers on the ``kibomigrate`` logger."""

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._handlers_configured = False

    @property
    def log_file(self) -> Path:
        return Path(self.config.log_directory) / self.config.log_filename

    def setup_logging(self) -> None:
        """Set up logging configuration for all components."""
        if self._handlers_configured:
            return

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(getattr(logging, self.config.level.value))
        root_logger.propagate = False

        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        if self.config.enable_console_logging:
            root_logger.addHandler(self._create_console_handler())

        if self.config.enable_file_logging:
            Path(self.config.log_directory).mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(self._create_file_handler())

        self._configure_third_party_logging()
        self._handlers_configured = True

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(ColoredConsoleFormatter(use_colors=self.config.console_colors))
        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))
        return handler

    def _create_file_handler(self) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=str(self.log_file),
            maxBytes=self.config.max_file_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(StructuredFormatter())
        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))
        return handler

    def _configure_third_party_logging(self) -> None:
        for logger_name in ["aiohttp", "asyncio", "urllib3"]:
            logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the ``kibomigrate`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(config: Optional[LoggingConfig] = None) -> LoggingManager:
    """Configure logging for one batch run and return the manager."""
    manager = LoggingManager(config)
    manager.setup_logging()
    return manager
