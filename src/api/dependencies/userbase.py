"""Userbase API dependencies.

Service singletons built from the bootstrap adapters on first use. Routes
receive them through ``Depends``; tests either swap adapters in
src.bootstrap.userbase or inject whole services with the set_*() helpers,
then call reset_userbase_services() between tests.
"""

from __future__ import annotations

from src.application.services.challenge_service import ChallengeService
from src.application.services.identity_link_service import IdentityLinkService
from src.application.services.merge_preview_service import MergePreviewService
from src.application.services.session_service import SessionService
from src.application.services.soft_post_overlay_service import SoftPostOverlayService
from src.application.services.soft_vote_overlay_service import SoftVoteOverlayService
from src.application.services.soft_vote_reconciliation_service import (
    SoftVoteReconciliationService,
)
from src.bootstrap.userbase import (
    get_alert_delivery,
    get_identity_store,
    get_ledger_broadcaster,
    get_ledger_reader,
    get_signature_verifier,
    get_time_authority,
    get_userbase_config,
)

_session_service: SessionService | None = None
_challenge_service: ChallengeService | None = None
_identity_link_service: IdentityLinkService | None = None
_merge_preview_service: MergePreviewService | None = None
_soft_vote_overlay_service: SoftVoteOverlayService | None = None
_soft_post_overlay_service: SoftPostOverlayService | None = None
_reconciliation_service: SoftVoteReconciliationService | None = None


def get_session_service() -> SessionService:
    """Get session service instance.

    Raises:
        ConfigError: If the Identity Store is not configured.
    """
    global _session_service
    if _session_service is None:
        _session_service = SessionService(
            store=get_identity_store(),
            time_authority=get_time_authority(),
            session_ttl_days=get_userbase_config().session_ttl_days,
        )
    return _session_service


def set_session_service(service: SessionService) -> None:
    global _session_service
    _session_service = service


def get_challenge_service() -> ChallengeService:
    global _challenge_service
    if _challenge_service is None:
        _challenge_service = ChallengeService(
            store=get_identity_store(),
            ledger=get_ledger_reader(),
            time_authority=get_time_authority(),
        )
    return _challenge_service


def set_challenge_service(service: ChallengeService) -> None:
    global _challenge_service
    _challenge_service = service


def get_identity_link_service() -> IdentityLinkService:
    global _identity_link_service
    if _identity_link_service is None:
        _identity_link_service = IdentityLinkService(
            store=get_identity_store(),
            time_authority=get_time_authority(),
            signature_verifier=get_signature_verifier(),
        )
    return _identity_link_service


def set_identity_link_service(service: IdentityLinkService) -> None:
    global _identity_link_service
    _identity_link_service = service


def get_merge_preview_service() -> MergePreviewService:
    global _merge_preview_service
    if _merge_preview_service is None:
        _merge_preview_service = MergePreviewService(store=get_identity_store())
    return _merge_preview_service


def set_merge_preview_service(service: MergePreviewService) -> None:
    global _merge_preview_service
    _merge_preview_service = service


def get_soft_vote_overlay_service() -> SoftVoteOverlayService:
    global _soft_vote_overlay_service
    if _soft_vote_overlay_service is None:
        _soft_vote_overlay_service = SoftVoteOverlayService(
            store=get_identity_store(),
            time_authority=get_time_authority(),
        )
    return _soft_vote_overlay_service


def set_soft_vote_overlay_service(service: SoftVoteOverlayService) -> None:
    global _soft_vote_overlay_service
    _soft_vote_overlay_service = service


def get_soft_post_overlay_service() -> SoftPostOverlayService:
    global _soft_post_overlay_service
    if _soft_post_overlay_service is None:
        _soft_post_overlay_service = SoftPostOverlayService(store=get_identity_store())
    return _soft_post_overlay_service


def set_soft_post_overlay_service(service: SoftPostOverlayService) -> None:
    global _soft_post_overlay_service
    _soft_post_overlay_service = service


def get_reconciliation_service() -> SoftVoteReconciliationService:
    """Get the soft vote reconciliation worker.

    The broadcaster may be None; the worker then fails each run with
    ConfigError instead of failing construction.
    """
    global _reconciliation_service
    if _reconciliation_service is None:
        _reconciliation_service = SoftVoteReconciliationService(
            store=get_identity_store(),
            time_authority=get_time_authority(),
            broadcaster=get_ledger_broadcaster(),
            alerts=get_alert_delivery(),
            lease_seconds=get_userbase_config().soft_vote_lease_seconds,
        )
    return _reconciliation_service


def set_reconciliation_service(service: SoftVoteReconciliationService) -> None:
    global _reconciliation_service
    _reconciliation_service = service


def reset_userbase_services() -> None:
    """Drop every cached service so the next request rebuilds them."""
    global _session_service, _challenge_service, _identity_link_service
    global _merge_preview_service, _soft_vote_overlay_service
    global _soft_post_overlay_service, _reconciliation_service
    _session_service = None
    _challenge_service = None
    _identity_link_service = None
    _merge_preview_service = None
    _soft_vote_overlay_service = None
    _soft_post_overlay_service = None
    _reconciliation_service = None
