"""Request authentication for the userbase API."""

from src.api.auth.internal_token import require_internal_token
from src.api.auth.session_auth import (
    clear_refresh_cookie,
    get_current_session,
    require_user_id,
)

__all__: list[str] = [
    "clear_refresh_cookie",
    "get_current_session",
    "require_internal_token",
    "require_user_id",
]
