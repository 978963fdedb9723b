"""Observability infrastructure: structlog configuration and correlation ids.

Usage:
    from src.infrastructure.observability import configure_structlog

    # At startup
    configure_structlog(environment=config.environment, log_level=config.log_level)

    # Per request (done by LoggingMiddleware)
    token = set_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
"""

from src.infrastructure.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from src.infrastructure.observability.logging import configure_structlog

__all__: list[str] = [
    "CORRELATION_ID_HEADER",
    "configure_structlog",
    "correlation_id_processor",
    "generate_correlation_id",
    "get_correlation_id",
    "reset_correlation_id",
    "set_correlation_id",
]
