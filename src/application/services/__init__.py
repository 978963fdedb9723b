"""Application services - Use case orchestration.

This module contains application services that orchestrate domain
operations and coordinate with infrastructure adapters.

Available services:
- SessionService: Refresh-token sessions (issue, resolve, revoke)
- ChallengeService: Hive link challenges checked against the Ledger
- IdentityLinkService: List, link and unlink identities
- MergePreviewService: Read-only identity ownership conflicts
- SoftVoteOverlayService: Vote overlay reads and outbox enqueue
- SoftPostOverlayService: Soft post lookup by author and safe_user alias
- SoftVoteReconciliationService: Outbox drain into Ledger broadcasts
"""

from src.application.services.challenge_service import (
    ChallengeResult,
    ChallengeService,
)
from src.application.services.identity_link_service import IdentityLinkService
from src.application.services.merge_preview_service import (
    MergePreview,
    MergePreviewService,
)
from src.application.services.session_service import (
    IssuedSession,
    ResolvedSession,
    SessionService,
)
from src.application.services.soft_post_overlay_service import SoftPostOverlayService
from src.application.services.soft_vote_overlay_service import SoftVoteOverlayService
from src.application.services.soft_vote_reconciliation_service import (
    RetryOptions,
    RetryReport,
    SoftVoteReconciliationService,
)

__all__: list[str] = [
    "ChallengeResult",
    "ChallengeService",
    "IdentityLinkService",
    "IssuedSession",
    "MergePreview",
    "MergePreviewService",
    "ResolvedSession",
    "RetryOptions",
    "RetryReport",
    "SessionService",
    "SoftPostOverlayService",
    "SoftVoteOverlayService",
    "SoftVoteReconciliationService",
]
