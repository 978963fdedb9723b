"""API dependencies for dependency injection."""

from src.api.dependencies.userbase import (
    get_challenge_service,
    get_identity_link_service,
    get_merge_preview_service,
    get_reconciliation_service,
    get_session_service,
    get_soft_post_overlay_service,
    get_soft_vote_overlay_service,
    reset_userbase_services,
)

__all__: list[str] = [
    "get_challenge_service",
    "get_identity_link_service",
    "get_merge_preview_service",
    "get_reconciliation_service",
    "get_session_service",
    "get_soft_post_overlay_service",
    "get_soft_vote_overlay_service",
    "reset_userbase_services",
]
