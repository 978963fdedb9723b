"""Soft vote and soft post overlay models."""

from typing import Any, Optional

from pydantic import BaseModel


class PostKeysRequest(BaseModel):
    """A batch of post references.

    ``posts`` is cleaned server side: malformed entries are dropped rather
    than rejected, so the field accepts any JSON value.
    """

    posts: Any = None


class SoftVoteOverlayModel(BaseModel):
    author: str
    permlink: str
    weight: Any
    status: str
    updated_at: str


class SoftVoteOverlayResponse(BaseModel):
    items: list[SoftVoteOverlayModel]


class QueueSoftVoteRequest(BaseModel):
    author: Optional[str] = None
    permlink: Optional[str] = None
    weight: Any = None


class QueuedSoftVoteModel(SoftVoteOverlayModel):
    id: str


class QueueSoftVoteResponse(BaseModel):
    soft_vote: QueuedSoftVoteModel


class RetrySoftVotesRequest(BaseModel):
    """Worker options; coerced the same way the CLI coerces its flags."""

    limit: Any = None
    max_age_minutes: Any = None
    cleanup_days: Any = None


class RetrySoftVotesResponse(BaseModel):
    attempted: int
    success: int
    failed: int
    cleaned: int


class SoftPostUserModel(BaseModel):
    id: Optional[str] = None
    display_name: Optional[str] = None
    handle: Optional[str] = None
    avatar_url: Optional[str] = None


class SoftPostModel(BaseModel):
    author: str
    permlink: str
    type: Optional[str] = None
    metadata: Any = None
    user: SoftPostUserModel


class SoftPostOverlayResponse(BaseModel):
    items: list[SoftPostModel]
