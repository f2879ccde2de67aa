"""Logging configuration using structlog.

Log output goes to stderr so that CLI output on stdout (ruleset content,
tables) stays machine readable.
"""

import logging
import sys
from typing import Any, Optional

import structlog

from api_governance import __version__
from api_governance.config import Settings, get_settings

SERVICE_NAME = "api-governance"

# Keys whose values can hold whole ruleset documents
REDACTED_KEYS = frozenset({"content", "ruleset_content"})
MAX_VALUE_LENGTH = 200


def add_service_context(settings: Settings) -> structlog.types.Processor:
    """Build a processor stamping every event with service and environment."""

    def processor(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("version", __version__)
        event_dict.setdefault("environment", settings.environment)
        return event_dict

    return processor


def truncate_ruleset_content(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Keep ruleset documents and long driver errors out of log lines."""
    for key, value in event_dict.items():
        if key in REDACTED_KEYS and value is not None:
            event_dict[key] = f"<{len(value)} bytes>" if isinstance(value, (bytes, str)) else "<redacted>"
        elif key == "error" and isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            event_dict[key] = value[:MAX_VALUE_LENGTH] + "..."
    return event_dict


def configure_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """Configure structured logging for the governance store.

    Args:
        log_level: Overrides ``LOG_LEVEL`` (used by the CLI ``--log-level`` flag)
        settings: Settings to read; defaults to the cached application settings
    """
    settings = settings or get_settings()

    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context(settings),
        truncate_ruleset_content,
    ]

    if settings.is_production:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    # SQL statements carry ruleset blobs; only show them when echo is asked for
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
