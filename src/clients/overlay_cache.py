"""In-process cache for soft vote and soft post overlays.

The cache is an explicit object handed to SoftOverlayClient, never module
state, so tests and separate users get independent caches.

Entries distinguish "confirmed absent" (stored value None) from "never looked
up" (no entry). Positive and negative entries expire independently; a TTL
of None means the entry never expires.

Keys:
- votes are scoped per user: OverlayKey("vote", user_id, author, permlink)
- posts are global: OverlayKey("post", None, author, permlink)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

OverlayKind = Literal["vote", "post"]


@dataclass(frozen=True)
class OverlayKey:
    kind: OverlayKind
    user_id: Optional[str]
    author: str
    permlink: str

    @property
    def post_key(self) -> str:
        return f"{self.author}/{self.permlink}"


@dataclass(frozen=True)
class CacheEntry:
    """A cached lookup result. ``value`` None means confirmed absent."""

    value: Optional[dict[str, Any]]
    stored_at: float

    @property
    def is_negative(self) -> bool:
        return self.value is None


class OverlayCache:
    """Overlay entries plus the map of batches currently being fetched.

    Attributes:
        inflight: Batch signature -> pending fetch task. A batch issued
            while an identical one is pending awaits the same task.
    """

    def __init__(
        self,
        positive_ttl: Optional[float] = None,
        negative_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create an empty cache.

        Args:
            positive_ttl: Seconds a found overlay stays valid, or None.
            negative_ttl: Seconds a confirmed absence stays valid, or None.
            clock: Monotonic seconds source; injectable for tests.
        """
        self._positive_ttl = positive_ttl
        self._negative_ttl = negative_ttl
        self._clock = clock
        self._entries: dict[OverlayKey, CacheEntry] = {}
        self._listeners: list[Callable[[], None]] = []
        self.inflight: dict[str, asyncio.Future[None]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: OverlayKey) -> Optional[CacheEntry]:
        """Return the live entry for a key, or None if missing or expired.

        Expired entries are dropped on read.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        ttl = self._negative_ttl if entry.is_negative else self._positive_ttl
        if ttl is not None and self._clock() - entry.stored_at >= ttl:
            del self._entries[key]
            return None
        return entry

    def set(self, key: OverlayKey, value: Optional[dict[str, Any]]) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(
        self,
        user_id: Optional[str] = None,
        author: Optional[str] = None,
        permlink: Optional[str] = None,
    ) -> int:
        """Drop entries matching every given field.

        ``invalidate(user_id="u1")`` drops that user's votes;
        ``invalidate(author="a", permlink="p")`` drops both the post and
        every user's vote for that post.

        Returns:
            Number of entries dropped.
        """
        doomed = [
            key
            for key in self._entries
            if (user_id is None or key.user_id == user_id)
            and (author is None or key.author == author)
            and (permlink is None or key.permlink == permlink)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback fired after each fetched batch is stored."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    def forget_inflight(self, signature: str, task: asyncio.Future[None]) -> None:
        """Remove a finished batch, unless a newer one took its slot."""
        if self.inflight.get(signature) is task:
            del self.inflight[signature]
