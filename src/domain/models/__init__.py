"""Domain models for Userbase.

Contains value objects and domain models that represent
core business concepts. These models are immutable and
contain no infrastructure dependencies.
"""

from src.domain.models.challenge import IdentityChallenge
from src.domain.models.identity import Identity, IdentityKind, get_identity_kind
from src.domain.models.post_key import PostKey, clean_post_keys
from src.domain.models.session import Session, hash_refresh_token
from src.domain.models.soft_post import SoftPost, SoftPostAuthor
from src.domain.models.soft_vote import SoftVote, SoftVoteStatus

__all__: list[str] = [
    "Identity",
    "IdentityChallenge",
    "IdentityKind",
    "PostKey",
    "Session",
    "SoftPost",
    "SoftPostAuthor",
    "SoftVote",
    "SoftVoteStatus",
    "clean_post_keys",
    "get_identity_kind",
    "hash_refresh_token",
]
