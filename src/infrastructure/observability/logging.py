"""Structured logging configuration with structlog.

Production emits one JSON object per line for log aggregation; every other
environment uses the colored console renderer.

Log Entry Format (production):
    {
        "timestamp": "2026-01-15T10:00:00.000000Z",
        "level": "info",
        "event": "soft_vote_broadcasted",
        "service": "userbase",
        "correlation_id": "uuid",
        ...additional context
    }

Event names are snake_case; context goes in key/value pairs. Secrets
(refresh tokens, posting keys, internal tokens) are never passed to a
logger.
"""

import logging
from typing import Any, cast

import structlog
from structlog.typing import Processor

from src.infrastructure.observability.correlation import correlation_id_processor

SERVICE_NAME = "userbase"
DEFAULT_LOG_LEVEL = "INFO"


def _resolve_level(level_name: str | None) -> int:
    name = (level_name or DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _add_service_name(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_structlog(
    environment: str = "development",
    log_level: str | None = None,
) -> None:
    """Configure structlog once at process startup.

    Args:
        environment: ``production`` selects JSON output; anything else the
            console renderer.
        log_level: Minimum level name (e.g. ``DEBUG``). Defaults to INFO.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        cast(Processor, _add_service_name),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if environment.lower() == "production":
        final_processors: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + final_processors,
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
