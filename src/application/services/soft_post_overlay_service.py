"""Soft post overlay lookup.

Soft posts are resolvable two ways: by the literal post author, or by a
``safe_user`` alias the client knows the post may be attributed to. The
alias pass is best-effort; its failure only narrows the result.
"""

from __future__ import annotations

from typing import Any

from structlog import get_logger

from src.application.ports.identity_store import IdentityStoreProtocol
from src.domain.errors.userbase import PersistenceError
from src.domain.models.post_key import clean_post_keys
from src.domain.models.soft_post import SoftPost

logger = get_logger(__name__)


class SoftPostOverlayService:
    """Batched soft post lookup by author and by safe_user alias."""

    def __init__(self, store: IdentityStoreProtocol) -> None:
        self._store = store

    async def get_soft_posts(self, posts: Any) -> list[dict[str, Any]]:
        """Resolve soft post annotations for the requested posts.

        Args:
            posts: Raw ``posts`` list from the request body.

        Returns:
            One item per matching (author, permlink), author matches first.

        Raises:
            PersistenceError: The author pass failed.
        """
        keys = clean_post_keys(posts)
        if not keys:
            return []

        authors = sorted({key.author for key in keys})
        permlinks = sorted({key.permlink for key in keys})
        safe_users = sorted({key.safe_user for key in keys if key.safe_user})
        requested = {key.key for key in keys}

        try:
            primary = await self._store.find_soft_posts_by_author(authors, permlinks)
        except PersistenceError as exc:
            logger.error("soft_posts_fetch_failed", error=exc.message)
            raise PersistenceError(
                "Failed to fetch soft posts", details=exc.details or exc.message
            ) from exc

        secondary: list[SoftPost] = []
        if safe_users:
            try:
                secondary = await self._store.find_soft_posts_by_safe_user(
                    safe_users, permlinks
                )
            except PersistenceError as exc:
                logger.warning("soft_posts_safe_user_fetch_failed", error=exc.message)

        seen: set[str] = set()
        items: list[dict[str, Any]] = []
        for post in [*primary, *secondary]:
            if post.key not in requested or post.key in seen:
                continue
            seen.add(post.key)
            items.append(post.to_dict())
        return items
