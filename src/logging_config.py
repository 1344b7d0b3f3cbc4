"""Structured logging configuration for Random Raindrop Telegram Bot."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

LOGGER_NAMESPACE = "random_raindrop_bot"

# Bot API URLs carry the token in the path: /bot<token>/sendMessage
_BOT_TOKEN_PATTERN = re.compile(r"/bot[^/\s]+/")

_CONTEXT_FIELDS = (
    "execution_id",
    "component",
    "collection_id",
    "chat_id",
    "item_id",
    "item_title",
    "status_code",
    "terminal_state",
)


def redact(text: str) -> str:
    """Mask a Telegram bot token embedded in a URL."""
    return _BOT_TOKEN_PATTERN.sub("/bot<redacted>/", text)


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field_name in _CONTEXT_FIELDS:
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        if hasattr(record, "result"):
            log_entry["result"] = record.result

        if record.exc_info:
            log_entry["exception"] = redact(self.formatException(record.exc_info))

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ExecutionLogger:
    """Logger with execution context and structured logging."""

    def __init__(self, execution_id: str, component: str = "main"):
        """Initialize execution logger.

        Args:
            execution_id: Unique identifier for this execution
            component: Component name (e.g., 'raindrop_client', 'telegram_publisher')
        """
        self.execution_id = execution_id
        self.component = component
        self.logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None

    def _log_with_context(self, level: int, message: str, **kwargs) -> None:
        """Log message with execution context."""
        extra = {
            "execution_id": self.execution_id,
            "component": self.component,
            **kwargs,
        }
        self.logger.log(level, message, extra=extra)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with context."""
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with context."""
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message with context."""
        self._log_with_context(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with context."""
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def log_execution_start(self, **kwargs) -> None:
        """Log execution start with timestamp."""
        self.start_time = datetime.now(UTC)
        self.info(
            f"Starting {self.component} execution",
            execution_start=self.start_time.isoformat(),
            **kwargs,
        )

    def log_execution_end(self, success: bool = True, **kwargs) -> None:
        """Log execution end with timestamp and duration."""
        self.end_time = datetime.now(UTC)

        duration_seconds = None
        if self.start_time:
            duration_seconds = (self.end_time - self.start_time).total_seconds()

        self.info(
            f"Completed {self.component} execution",
            execution_end=self.end_time.isoformat(),
            execution_duration_seconds=duration_seconds,
            execution_success=success,
            **kwargs,
        )

    def log_result(self, result: dict[str, Any]) -> None:
        """Log the terminal state of an invocation."""
        level = logging.INFO if result.get("notified") else logging.ERROR
        self._log_with_context(
            level,
            f"Invocation finished: {result.get('state')}",
            terminal_state=result.get("state"),
            result=result,
        )


def setup_structured_logging(log_level: str = "INFO") -> None:
    """Setup structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    loggers = [
        LOGGER_NAMESPACE,
        f"{LOGGER_NAMESPACE}.main",
        f"{LOGGER_NAMESPACE}.orchestrator",
        f"{LOGGER_NAMESPACE}.raindrop_client",
        f"{LOGGER_NAMESPACE}.telegram_publisher",
        f"{LOGGER_NAMESPACE}.secrets_manager",
        f"{LOGGER_NAMESPACE}.cloudwatch_metrics",
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


def create_execution_logger(
    component: str, execution_id: str | None = None
) -> ExecutionLogger:
    """Create an execution logger for a component.

    Args:
        component: Component name
        execution_id: Optional execution ID (will generate one if not provided)

    Returns:
        ExecutionLogger instance
    """
    if not execution_id:
        execution_id = f"exec_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"

    return ExecutionLogger(execution_id, component)
