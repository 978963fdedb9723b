"""Internal token guard for operator endpoints.

The soft vote retry trigger is called by cron, not by users. It is guarded by
a shared secret in the ``x-userbase-token`` header, compared in constant
time. When no secret is configured the guard is open; startup logs a warning
for that case.
"""

import hmac
from typing import Annotated

import structlog
from fastapi import Header

from src.bootstrap.userbase import get_userbase_config
from src.domain.errors.userbase import UnauthorizedError

logger = structlog.get_logger(__name__)


def require_internal_token(
    x_userbase_token: Annotated[
        str | None,
        Header(description="Shared secret for internal operator endpoints."),
    ] = None,
) -> None:
    """Reject the request unless it carries the configured internal token.

    Raises:
        UnauthorizedError: A token is configured and the header does not match.
    """
    expected = get_userbase_config().internal_token
    if not expected:
        return

    presented = x_userbase_token or ""
    if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("internal_token_rejected", token_present=bool(x_userbase_token))
        raise UnauthorizedError()
