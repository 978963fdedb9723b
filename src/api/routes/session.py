"""Session endpoints.

GET reports the session behind the ``userbase_refresh`` cookie; DELETE signs
out by revoking it and clearing the cookie.
"""

from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, Response

from src.api.auth.session_auth import clear_refresh_cookie, get_current_session
from src.api.dependencies.userbase import get_session_service
from src.api.models.session import SessionResponse, SuccessResponse
from src.application.services.session_service import ResolvedSession, SessionService
from src.domain.models.timestamps import isoformat_z

router = APIRouter(prefix="/auth", tags=["session"])


@router.get(
    "/session",
    response_model=SessionResponse,
    responses={401: {"description": "Missing, unknown or expired session"}},
)
async def get_session(
    session: Annotated[ResolvedSession, Depends(get_current_session)],
) -> SessionResponse:
    return SessionResponse(
        user_id=session.user_id,
        expires_at=isoformat_z(session.expires_at),
    )


@router.delete("/session", response_model=SuccessResponse)
async def delete_session(
    response: Response,
    service: Annotated[SessionService, Depends(get_session_service)],
    userbase_refresh: Annotated[str | None, Cookie()] = None,
) -> SuccessResponse:
    """Sign out. Succeeds even when the session was already revoked."""
    await service.revoke_session(userbase_refresh)
    clear_refresh_cookie(response)
    return SuccessResponse()
