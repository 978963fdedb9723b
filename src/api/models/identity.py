"""Identity linking request/response models.

Request fields are deliberately loose (optional, untyped where clients are
known to send odd values) so that missing or malformed values reach the
services, which own the user-facing error text.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class HiveChallengeRequest(BaseModel):
    handle: Optional[str] = Field(default=None, description="Hive account name")


class ChallengeResponse(BaseModel):
    """A message for the user to sign with the claimed identity's key.

    Attributes:
        message: Exact text to sign.
        expires_at: When the challenge stops being accepted, ISO-8601 UTC.
    """

    message: str
    expires_at: str


class HiveVerifyRequest(BaseModel):
    handle: Optional[str] = None
    signature: Optional[str] = Field(
        default=None, description="Hex-encoded signature over the challenge message"
    )


class IdentityModel(BaseModel):
    id: str
    user_id: str
    type: str
    identifier: str
    is_primary: bool
    verified_at: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class IdentityResponse(BaseModel):
    identity: IdentityModel


class IdentityListResponse(BaseModel):
    identities: list[IdentityModel]


class UnlinkIdentityRequest(BaseModel):
    id: Optional[str] = None


class EvmChallengeRequest(BaseModel):
    address: Optional[str] = Field(default=None, description="0x-prefixed EVM address")


class EvmVerifyRequest(BaseModel):
    address: Optional[str] = None
    signature: Optional[str] = Field(
        default=None, description="EIP-191 personal_sign signature over the challenge message"
    )


class EvmFarcasterVerifyRequest(BaseModel):
    address: Optional[str] = None
    farcaster_fid: Any = Field(
        default=None, description="Farcaster fid that verified the address"
    )


class CreateIdentityRequest(BaseModel):
    """Body of POST /identities; only ``farcaster`` is accepted."""

    type: Any = None
    external_id: Any = None
    handle: Any = None
    address: Any = None
    metadata: Any = None
    is_primary: Any = None
