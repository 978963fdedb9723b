"""Session cookie authentication.

Routes that act on behalf of a user depend on ``require_user_id``; the
refresh token travels in the ``userbase_refresh`` cookie and is resolved by
the Session Manager. The session service is built before the cookie is
inspected, so a missing store configuration surfaces as 500 rather than 401.
"""

from typing import Annotated

from fastapi import Cookie, Depends, Response

from src.api.dependencies.userbase import get_session_service
from src.application.services.session_service import ResolvedSession, SessionService
from src.bootstrap.userbase import get_userbase_config
from src.domain.models.session import REFRESH_COOKIE_NAME


async def get_current_session(
    session_service: Annotated[SessionService, Depends(get_session_service)],
    userbase_refresh: Annotated[str | None, Cookie()] = None,
) -> ResolvedSession:
    """Resolve the caller's session from the refresh cookie.

    Raises:
        UnauthorizedError: No cookie, or no active session for it.
        SessionExpiredError: The session has expired.
    """
    return await session_service.resolve_session(userbase_refresh)


async def require_user_id(
    session: Annotated[ResolvedSession, Depends(get_current_session)],
) -> str:
    return session.user_id


def clear_refresh_cookie(response: Response) -> None:
    """Expire the refresh cookie with the attributes it was set with."""
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=get_userbase_config().is_production,
    )
