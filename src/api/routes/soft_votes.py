"""Soft vote endpoints: overlay lookup, outbox enqueue and the retry trigger."""

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends

from src.api.auth.internal_token import require_internal_token
from src.api.auth.session_auth import require_user_id
from src.api.dependencies.userbase import (
    get_reconciliation_service,
    get_soft_vote_overlay_service,
)
from src.api.models.soft_action import (
    PostKeysRequest,
    QueuedSoftVoteModel,
    QueueSoftVoteRequest,
    QueueSoftVoteResponse,
    RetrySoftVotesRequest,
    RetrySoftVotesResponse,
    SoftVoteOverlayModel,
    SoftVoteOverlayResponse,
)
from src.application.services.soft_vote_overlay_service import SoftVoteOverlayService
from src.application.services.soft_vote_reconciliation_service import (
    RetryOptions,
    SoftVoteReconciliationService,
)

router = APIRouter(prefix="/soft-votes", tags=["soft-votes"])


@router.post("", response_model=SoftVoteOverlayResponse)
async def get_soft_votes(
    user_id: Annotated[str, Depends(require_user_id)],
    body: PostKeysRequest,
    service: Annotated[SoftVoteOverlayService, Depends(get_soft_vote_overlay_service)],
) -> SoftVoteOverlayResponse:
    """Caller's own soft vote state for a batch of posts."""
    items = await service.get_vote_overlays(user_id, body.posts)
    return SoftVoteOverlayResponse(
        items=[SoftVoteOverlayModel(**item) for item in items]
    )


@router.post(
    "/queue",
    response_model=QueueSoftVoteResponse,
    responses={400: {"description": "Missing vote target or invalid weight"}},
)
async def queue_soft_vote(
    user_id: Annotated[str, Depends(require_user_id)],
    body: QueueSoftVoteRequest,
    service: Annotated[SoftVoteOverlayService, Depends(get_soft_vote_overlay_service)],
) -> QueueSoftVoteResponse:
    vote = await service.enqueue_vote(user_id, body.author, body.permlink, body.weight)
    return QueueSoftVoteResponse(
        soft_vote=QueuedSoftVoteModel(id=vote.id, **vote.to_overlay())
    )


@router.post(
    "/retry",
    response_model=RetrySoftVotesResponse,
    dependencies=[Depends(require_internal_token)],
    responses={
        401: {"description": "Internal token mismatch"},
        500: {"description": "Broadcaster or store not configured"},
    },
)
async def retry_soft_votes(
    service: Annotated[
        SoftVoteReconciliationService, Depends(get_reconciliation_service)
    ],
    body: Annotated[Optional[RetrySoftVotesRequest], Body()] = None,
) -> RetrySoftVotesResponse:
    """Run one reconciliation batch. Meant for cron, not for users."""
    body = body or RetrySoftVotesRequest()
    options = RetryOptions.from_raw(
        limit=body.limit,
        max_age_minutes=body.max_age_minutes,
        cleanup_days=body.cleanup_days,
    )
    report = await service.run(options)
    return RetrySoftVotesResponse(**report.to_dict())
