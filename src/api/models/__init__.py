"""
API models (Pydantic DTOs) for the userbase service.

This module contains all Pydantic request/response models
used by API endpoints.
"""

from src.api.models.health import HealthResponse
from src.api.models.identity import (
    ChallengeResponse,
    CreateIdentityRequest,
    EvmChallengeRequest,
    EvmFarcasterVerifyRequest,
    EvmVerifyRequest,
    HiveChallengeRequest,
    HiveVerifyRequest,
    IdentityListResponse,
    IdentityModel,
    IdentityResponse,
    UnlinkIdentityRequest,
)
from src.api.models.merge import MergePreviewRequest, MergePreviewResponse
from src.api.models.session import SessionResponse, SuccessResponse
from src.api.models.soft_action import (
    PostKeysRequest,
    QueueSoftVoteRequest,
    QueueSoftVoteResponse,
    RetrySoftVotesRequest,
    RetrySoftVotesResponse,
    SoftPostOverlayResponse,
    SoftVoteOverlayResponse,
)

__all__: list[str] = [
    "ChallengeResponse",
    "CreateIdentityRequest",
    "EvmChallengeRequest",
    "EvmFarcasterVerifyRequest",
    "EvmVerifyRequest",
    "HealthResponse",
    "HiveChallengeRequest",
    "HiveVerifyRequest",
    "IdentityListResponse",
    "IdentityModel",
    "IdentityResponse",
    "MergePreviewRequest",
    "MergePreviewResponse",
    "PostKeysRequest",
    "QueueSoftVoteRequest",
    "QueueSoftVoteResponse",
    "RetrySoftVotesRequest",
    "RetrySoftVotesResponse",
    "SessionResponse",
    "SoftPostOverlayResponse",
    "SoftVoteOverlayResponse",
    "SuccessResponse",
]
