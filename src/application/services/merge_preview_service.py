"""Merge Preview Service.

Read-only conflict detection before an account merge: given an identity the
caller wants to link, report whether it already exists and, if it belongs to
another user, how much data that user owns. Nothing is ever written, so the
preview is idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from structlog import get_logger

from src.application.ports.identity_store import IdentityStoreProtocol, UserRowTable
from src.domain.errors.userbase import ValidationError
from src.domain.models.identity import get_identity_kind

logger = get_logger(__name__)

COUNTED_TABLES: tuple[UserRowTable, ...] = (
    UserRowTable.IDENTITIES,
    UserRowTable.AUTH_METHODS,
    UserRowTable.SESSIONS,
    UserRowTable.SOFT_POSTS,
    UserRowTable.SOFT_VOTES,
)


@dataclass(frozen=True)
class MergePreview:
    """Result of a merge preview.

    Exactly one of three shapes is serialized:
    ``{exists: false}``, ``{exists: true, same_user: true}`` or
    ``{exists: true, same_user: false, source_user_id, counts}``.
    """

    exists: bool
    same_user: bool = False
    source_user_id: str | None = None
    counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        if not self.exists:
            return {"exists": False}
        if self.same_user:
            return {"exists": True, "same_user": True}
        return {
            "exists": True,
            "same_user": False,
            "source_user_id": self.source_user_id,
            "counts": dict(self.counts),
        }


class MergePreviewService:
    """Detects ownership conflicts for a claimed identity."""

    def __init__(self, store: IdentityStoreProtocol) -> None:
        self._store = store

    async def preview(
        self,
        identity_type: Any,
        raw_identifier: Any,
        caller_user_id: str,
    ) -> MergePreview:
        """Preview what linking this identity would collide with.

        Args:
            identity_type: Wire type string (hive, evm, farcaster).
            raw_identifier: Identifier as typed by the user.
            caller_user_id: Authenticated caller.

        Returns:
            MergePreview in one of its three shapes.

        Raises:
            ValidationError: Unsupported type, missing or malformed identifier.
        """
        kind = get_identity_kind(identity_type)
        if not isinstance(raw_identifier, str) or not raw_identifier:
            raise ValidationError("Missing identity identifier")
        identifier = kind.normalize(raw_identifier)

        identity = await self._store.find_identity(kind.name, identifier)
        if identity is None:
            return MergePreview(exists=False)

        if identity.user_id == caller_user_id:
            return MergePreview(exists=True, same_user=True)

        source_user_id = identity.user_id
        counts = {
            table.value: await self._store.count_user_rows(table, source_user_id)
            for table in COUNTED_TABLES
        }
        logger.info(
            "merge_preview_conflict",
            identity_type=kind.name,
            caller_user_id=caller_user_id,
            source_user_id=source_user_id,
        )
        return MergePreview(
            exists=True,
            same_user=False,
            source_user_id=source_user_id,
            counts=counts,
        )
