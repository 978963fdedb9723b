"""Soft post overlay endpoint. Public: soft posts are visible to everyone."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies.userbase import get_soft_post_overlay_service
from src.api.models.soft_action import (
    PostKeysRequest,
    SoftPostModel,
    SoftPostOverlayResponse,
)
from src.application.services.soft_post_overlay_service import SoftPostOverlayService

router = APIRouter(prefix="/soft-posts", tags=["soft-posts"])


@router.post("", response_model=SoftPostOverlayResponse)
async def get_soft_posts(
    body: PostKeysRequest,
    service: Annotated[SoftPostOverlayService, Depends(get_soft_post_overlay_service)],
) -> SoftPostOverlayResponse:
    items = await service.get_soft_posts(body.posts)
    return SoftPostOverlayResponse(items=[SoftPostModel(**item) for item in items])
