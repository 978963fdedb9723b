"""Identity linking endpoints.

Hive and EVM linking are two-step flows: POST /identities/{kind}/challenge
issues a message bound to the caller, the identifier and a nonce; the user
signs it (Hive posting key or wallet personal_sign) and
POST /identities/{kind}/verify commits the link.

Farcaster identities are recorded directly with POST /identities, and an
address Farcaster has verified for a linked fid can be attached with
POST /identities/evm/verify-farcaster.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.auth.session_auth import require_user_id
from src.api.dependencies.userbase import (
    get_challenge_service,
    get_identity_link_service,
)
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
from src.api.models.session import SuccessResponse
from src.application.services.challenge_service import ChallengeService
from src.application.services.identity_link_service import IdentityLinkService

router = APIRouter(prefix="/identities", tags=["identities"])


@router.post(
    "/hive/challenge",
    response_model=ChallengeResponse,
    responses={
        400: {"description": "Invalid JSON body or missing handle"},
        401: {"description": "No valid session"},
        404: {"description": "Hive account not found"},
        502: {"description": "Hive node failure"},
    },
)
async def create_hive_challenge(
    user_id: Annotated[str, Depends(require_user_id)],
    body: HiveChallengeRequest,
    service: Annotated[ChallengeService, Depends(get_challenge_service)],
) -> ChallengeResponse:
    result = await service.create_challenge(user_id, body.handle)
    return ChallengeResponse(**result.to_dict())


@router.post(
    "/hive/verify",
    response_model=IdentityResponse,
    responses={
        400: {"description": "Missing field, expired or reused challenge"},
        401: {"description": "No valid session or invalid signature"},
        404: {"description": "No open challenge for this handle"},
        409: {"description": "Identity already linked to another user"},
    },
)
async def verify_hive_challenge(
    user_id: Annotated[str, Depends(require_user_id)],
    body: HiveVerifyRequest,
    service: Annotated[IdentityLinkService, Depends(get_identity_link_service)],
) -> IdentityResponse:
    identity = await service.verify_hive_challenge(user_id, body.handle, body.signature)
    return IdentityResponse(identity=IdentityModel(**identity.to_dict()))


@router.post(
    "/evm/challenge",
    response_model=ChallengeResponse,
    responses={
        400: {"description": "Invalid JSON body, missing or invalid address"},
        401: {"description": "No valid session"},
    },
)
async def create_evm_challenge(
    user_id: Annotated[str, Depends(require_user_id)],
    body: EvmChallengeRequest,
    service: Annotated[ChallengeService, Depends(get_challenge_service)],
) -> ChallengeResponse:
    result = await service.create_evm_challenge(user_id, body.address)
    return ChallengeResponse(**result.to_dict())


@router.post(
    "/evm/verify",
    response_model=IdentityResponse,
    responses={
        400: {"description": "Missing field, invalid address, expired or reused challenge"},
        401: {"description": "No valid session or invalid signature"},
        404: {"description": "No open challenge for this address"},
        409: {"description": "Address already linked to another user"},
    },
)
async def verify_evm_challenge(
    user_id: Annotated[str, Depends(require_user_id)],
    body: EvmVerifyRequest,
    service: Annotated[IdentityLinkService, Depends(get_identity_link_service)],
) -> IdentityResponse:
    identity = await service.verify_evm_challenge(user_id, body.address, body.signature)
    return IdentityResponse(identity=IdentityModel(**identity.to_dict()))


@router.post(
    "/evm/verify-farcaster",
    response_model=IdentityResponse,
    responses={
        400: {"description": "Missing or invalid address, missing fid"},
        401: {"description": "No valid session"},
        403: {"description": "Farcaster fid not linked to the caller"},
        409: {"description": "Address already linked to another user"},
    },
)
async def verify_evm_via_farcaster(
    user_id: Annotated[str, Depends(require_user_id)],
    body: EvmFarcasterVerifyRequest,
    service: Annotated[IdentityLinkService, Depends(get_identity_link_service)],
) -> IdentityResponse:
    identity = await service.link_evm_via_farcaster(
        user_id, body.address, body.farcaster_fid
    )
    return IdentityResponse(identity=IdentityModel(**identity.to_dict()))


@router.post(
    "",
    response_model=IdentityResponse,
    responses={
        400: {"description": "Missing or unsupported type, missing fid"},
        401: {"description": "No valid session"},
        409: {"description": "Fid already linked to another user"},
    },
)
async def create_identity(
    user_id: Annotated[str, Depends(require_user_id)],
    body: CreateIdentityRequest,
    service: Annotated[IdentityLinkService, Depends(get_identity_link_service)],
) -> IdentityResponse:
    identity = await service.link_farcaster(
        user_id,
        identity_type=body.type,
        external_id=body.external_id,
        handle=body.handle,
        address=body.address,
        metadata=body.metadata,
        is_primary=body.is_primary,
    )
    return IdentityResponse(identity=IdentityModel(**identity.to_dict()))


@router.get("", response_model=IdentityListResponse)
async def list_identities(
    user_id: Annotated[str, Depends(require_user_id)],
    service: Annotated[IdentityLinkService, Depends(get_identity_link_service)],
) -> IdentityListResponse:
    identities = await service.list_identities(user_id)
    return IdentityListResponse(
        identities=[IdentityModel(**identity.to_dict()) for identity in identities]
    )


@router.delete(
    "",
    response_model=SuccessResponse,
    responses={
        400: {"description": "Missing identity id"},
        404: {"description": "Identity not found"},
    },
)
async def unlink_identity(
    user_id: Annotated[str, Depends(require_user_id)],
    body: UnlinkIdentityRequest,
    service: Annotated[IdentityLinkService, Depends(get_identity_link_service)],
) -> SuccessResponse:
    await service.unlink_identity(user_id, body.id)
    return SuccessResponse()
