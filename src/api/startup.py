"""Startup hooks for the userbase API.

1. Configure structured logging from UserbaseConfig
2. Warn about operator-facing settings that leave endpoints open or inert

Usage in FastAPI (see src.api.main):
    configure_logging()
    log_startup_warnings()
"""

from structlog import get_logger

from src.bootstrap.userbase import get_userbase_config
from src.infrastructure.observability import configure_structlog

logger = get_logger()


def configure_logging() -> None:
    """Configure structlog from ENVIRONMENT and LOG_LEVEL."""
    config = get_userbase_config()
    configure_structlog(environment=config.environment, log_level=config.log_level)
    logger.info(
        "logging_configured",
        environment=config.environment,
        log_level=config.log_level,
    )


def log_startup_warnings() -> None:
    """Log configuration gaps that do not stop the service from starting.

    A missing store configuration is not fatal here: store-backed endpoints
    answer 500 until it is fixed, while /health keeps working.
    """
    config = get_userbase_config()

    if not config.internal_token:
        logger.warning(
            "internal_token_not_configured",
            detail="POST /soft-votes/retry accepts unauthenticated requests",
        )
    if config.supabase is None:
        logger.warning("supabase_not_configured")
    if config.broadcaster is None:
        logger.warning("soft_vote_broadcaster_not_configured")
    if not config.alert_webhook_url:
        logger.info("alert_webhook_not_configured")
