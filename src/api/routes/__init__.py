"""
API routes for the userbase service.

Routes are organized by domain concern:
- health: liveness check
- session: refresh-cookie session lookup and sign-out
- identities: Hive challenge/verify, list and unlink
- merge: read-only merge preview
- soft_votes: vote overlay, outbox enqueue and retry trigger
- soft_posts: soft post overlay
"""

from src.api.routes.health import router as health_router
from src.api.routes.identities import router as identities_router
from src.api.routes.merge import router as merge_router
from src.api.routes.session import router as session_router
from src.api.routes.soft_posts import router as soft_posts_router
from src.api.routes.soft_votes import router as soft_votes_router

__all__: list[str] = [
    "health_router",
    "identities_router",
    "merge_router",
    "session_router",
    "soft_posts_router",
    "soft_votes_router",
]
