"""
Logging configuration for the resilience test client.

Provides consistent logging format across all modules with:
- JSON structured output for log shipping
- Human-readable output for interactive runs
- Run ID tracking to correlate records of concurrent clients
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for tracking run IDs across async operations
current_run_id: ContextVar[str | None] = ContextVar("current_run_id", default=None)

TEXT_FORMAT = "%(timestamp)s | %(levelname)-8s | %(name)s | %(run_id)s%(message)s"
JSON_FORMAT = (
    '{"timestamp": "%(timestamp)s", "level": "%(levelname)s", '
    '"module": %(name_json)s, "run_id": %(run_id_json)s, "message": %(message_json)s}'
)


class ResilienceFormatter(logging.Formatter):
    """
    Formatter including timestamp, level, module, run_id (if set), and message.

    In JSON mode every value is encoded, tracebacks included, so each record
    stays a single valid JSON document.
    """

    def __init__(self, fmt: str = TEXT_FORMAT, json_output: bool = False):
        super().__init__(fmt)
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        record.timestamp = datetime.now(UTC).isoformat()

        run_id = current_run_id.get()
        record.run_id = f"[{run_id}] " if run_id else ""
        record.run_id_json = json.dumps(run_id)
        record.name_json = json.dumps(record.name)

        if not self.json_output:
            return super().format(record)

        record.message = record.getMessage()
        message = record.message
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        record.message_json = json.dumps(message)
        return self.formatMessage(record)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    extra_handlers: list[logging.Handler] | None = None,
) -> logging.Logger:
    """
    Configure logging for the resilience client.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format
        extra_handlers: Additional handlers (e.g. forwarding to a log collector)

    Returns:
        Configured root logger
    """
    root = logging.getLogger()
    root.handlers.clear()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    formatter = ResilienceFormatter(
        JSON_FORMAT if json_output else TEXT_FORMAT, json_output=json_output
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)

    for extra in extra_handlers or []:
        extra.setFormatter(formatter)
        root.addHandler(extra)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_run_id(run_id: str) -> None:
    """Set the current run ID for log correlation."""
    current_run_id.set(run_id)


def clear_run_id() -> None:
    """Clear the current run ID."""
    current_run_id.set(None)
