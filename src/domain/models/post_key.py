"""Post key value object and request cleaning for overlay lookups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

MAX_POST_KEYS = 200


@dataclass(frozen=True)
class PostKey:
    """A Hive post address, optionally with a safe_user alias.

    Attributes:
        author: Post author account.
        permlink: Post permlink.
        safe_user: Alias identifier the post may be attributed to instead
            of the literal author.
    """

    author: str
    permlink: str
    safe_user: str | None = None

    @property
    def key(self) -> str:
        return f"{self.author}/{self.permlink}"


def clean_post_keys(posts: Any, limit: int = MAX_POST_KEYS) -> list[PostKey]:
    """Sanitize a client-supplied list of post references.

    Entries whose author or permlink is not a non-empty string after
    trimming are dropped. The first ``limit`` survivors are kept, then
    duplicates of (author, permlink) are removed keeping the first one.

    Args:
        posts: Raw ``posts`` value from the request body.
        limit: Maximum number of entries considered.

    Returns:
        Cleaned, deduplicated keys in request order.
    """
    if not isinstance(posts, list):
        return []

    cleaned: list[PostKey] = []
    for post in posts:
        if not isinstance(post, dict):
            continue
        author = post.get("author")
        permlink = post.get("permlink")
        if not isinstance(author, str) or not isinstance(permlink, str):
            continue
        if not author.strip() or not permlink.strip():
            continue
        safe_user = post.get("safe_user")
        if isinstance(safe_user, str):
            safe_user = safe_user.strip() or None
        else:
            safe_user = None
        cleaned.append(
            PostKey(
                author=author.strip(),
                permlink=permlink.strip(),
                safe_user=safe_user,
            )
        )

    return list(_dedupe(cleaned[:limit]))


def _dedupe(keys: Iterable[PostKey]) -> Iterable[PostKey]:
    seen: set[str] = set()
    for post in keys:
        if post.key in seen:
            continue
        seen.add(post.key)
        yield post
