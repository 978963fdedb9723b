"""Session endpoint models."""

from pydantic import BaseModel


class SessionResponse(BaseModel):
    """The user behind the presented refresh cookie.

    Attributes:
        user_id: Owning user id.
        expires_at: Session expiry, ISO-8601 UTC.
    """

    user_id: str
    expires_at: str


class SuccessResponse(BaseModel):
    success: bool = True
