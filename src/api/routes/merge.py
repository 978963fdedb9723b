"""Merge preview endpoint (read-only)."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.auth.session_auth import require_user_id
from src.api.dependencies.userbase import get_merge_preview_service
from src.api.models.merge import MergePreviewRequest, MergePreviewResponse
from src.application.services.merge_preview_service import MergePreviewService

router = APIRouter(prefix="/merge", tags=["merge"])


@router.post(
    "/preview",
    response_model=MergePreviewResponse,
    response_model_exclude_none=True,
    responses={400: {"description": "Unsupported type or invalid identifier"}},
)
async def preview_merge(
    user_id: Annotated[str, Depends(require_user_id)],
    body: MergePreviewRequest,
    service: Annotated[MergePreviewService, Depends(get_merge_preview_service)],
) -> MergePreviewResponse:
    """Report who owns an identity and what linking it would pull across."""
    preview = await service.preview(body.type, body.identifier, user_id)
    return MergePreviewResponse(**preview.to_dict())
