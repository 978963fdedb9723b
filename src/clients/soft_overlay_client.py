"""Batching, caching client for the soft overlay endpoints.

Front ends render many posts at once; each wants to know whether the viewer
has a pending soft vote on it and whether it has a soft post annotation.
This client turns those per-post questions into POSTs of at most
MAX_POST_KEYS uncached keys each, shares identical in-flight batches, and remembers both hits
and confirmed misses in an OverlayCache.

A failed fetch caches nothing. The error is logged and the caller gets
whatever the cache already held.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Optional

import httpx
from structlog import get_logger

from src.clients.overlay_cache import OverlayCache, OverlayKey
from src.domain.models.post_key import MAX_POST_KEYS
from src.domain.models.session import REFRESH_COOKIE_NAME

logger = get_logger(__name__)


class SoftOverlayError(Exception):
    """Raised when an overlay endpoint answers with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


@dataclass(frozen=True)
class PostRef:
    """A post the caller wants an overlay for."""

    author: str
    permlink: str
    safe_user: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.author}/{self.permlink}"


def _normalize_refs(posts: Iterable[PostRef]) -> list[PostRef]:
    """Trim, drop incomplete refs, dedupe by key and sort by key."""
    unique: dict[str, PostRef] = {}
    for post in posts:
        author = (post.author or "").strip()
        permlink = (post.permlink or "").strip()
        if not author or not permlink:
            continue
        safe_user = (post.safe_user or "").strip() or None
        ref = PostRef(author=author, permlink=permlink, safe_user=safe_user)
        existing = unique.get(ref.key)
        if existing is None or (existing.safe_user is None and safe_user):
            unique[ref.key] = ref
    return [unique[key] for key in sorted(unique)]


def _chunks(refs: list[PostRef], size: int = MAX_POST_KEYS) -> list[list[PostRef]]:
    return [refs[start : start + size] for start in range(0, len(refs), size)]


def _vote_key(user_id: str, author: str, permlink: str) -> OverlayKey:
    return OverlayKey("vote", user_id, author, permlink)


def _post_key(author: str, permlink: str) -> OverlayKey:
    return OverlayKey("post", None, author, permlink)


def _post_signature(batch: list[PostRef]) -> str:
    return "post:" + "|".join(
        f"{ref.key}:{ref.safe_user}" if ref.safe_user else ref.key for ref in batch
    )


class SoftOverlayClient:
    """Client for POST /soft-votes and POST /soft-posts."""

    def __init__(
        self,
        base_url: str,
        cache: OverlayCache,
        refresh_token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Userbase API root, e.g. ``https://app.example/api/userbase``.
            cache: Cache shared by every lookup made through this client.
            refresh_token: Session cookie value sent with vote lookups.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._cache = cache
        self._refresh_token = refresh_token
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def cache(self) -> OverlayCache:
        return self._cache

    # Votes

    async def get_vote_overlays(
        self, user_id: str, posts: Iterable[PostRef]
    ) -> dict[str, dict[str, Any]]:
        """Soft votes of ``user_id`` for the given posts.

        Returns:
            ``"author/permlink"`` -> overlay item, for posts that have one.
        """
        refs = _normalize_refs(posts)
        if not user_id or not refs:
            return {}

        missing = [
            ref
            for ref in refs
            if self._cache.get(_vote_key(user_id, ref.author, ref.permlink)) is None
        ]
        await asyncio.gather(
            *(
                self._load_batch(
                    f"vote:{user_id}:" + "|".join(ref.key for ref in batch),
                    partial(self._fetch_votes, user_id, batch),
                )
                for batch in _chunks(missing)
            )
        )

        return self._collect(refs, lambda ref: _vote_key(user_id, ref.author, ref.permlink))

    async def _fetch_votes(self, user_id: str, missing: list[PostRef]) -> None:
        payload = [{"author": ref.author, "permlink": ref.permlink} for ref in missing]
        try:
            items = await self._post_items("/soft-votes", payload)
        except (httpx.HTTPError, SoftOverlayError) as exc:
            logger.warning(
                "soft_vote_overlay_fetch_failed",
                error=str(exc),
                batch_size=len(missing),
            )
            return

        self._store_batch(
            items,
            missing,
            lambda author, permlink: _vote_key(user_id, author, permlink),
        )

    # Posts

    async def get_post_overlays(
        self, posts: Iterable[PostRef]
    ) -> dict[str, dict[str, Any]]:
        """Soft post annotations for the given posts.

        A post that carries a ``safe_user`` alias is refetched even when a
        negative is cached, since the alias can match rows the plain
        author lookup missed.
        """
        refs = _normalize_refs(posts)
        if not refs:
            return {}

        missing = []
        for ref in refs:
            entry = self._cache.get(_post_key(ref.author, ref.permlink))
            if entry is None or (entry.is_negative and ref.safe_user):
                missing.append(ref)

        await asyncio.gather(
            *(
                self._load_batch(_post_signature(batch), partial(self._fetch_posts, batch))
                for batch in _chunks(missing)
            )
        )

        return self._collect(refs, lambda ref: _post_key(ref.author, ref.permlink))

    async def _fetch_posts(self, missing: list[PostRef]) -> None:
        payload = []
        for ref in missing:
            item: dict[str, Any] = {"author": ref.author, "permlink": ref.permlink}
            if ref.safe_user:
                item["safe_user"] = ref.safe_user
            payload.append(item)

        try:
            items = await self._post_items("/soft-posts", payload)
        except (httpx.HTTPError, SoftOverlayError) as exc:
            logger.warning(
                "soft_post_overlay_fetch_failed",
                error=str(exc),
                batch_size=len(missing),
            )
            return

        self._store_batch(items, missing, _post_key)

    # Shared plumbing

    async def _load_batch(
        self, signature: str, fetch: Callable[[], Awaitable[None]]
    ) -> None:
        """Run ``fetch`` once per signature; concurrent callers share it."""
        task = self._cache.inflight.get(signature)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._cache.inflight[signature] = task
            task.add_done_callback(partial(self._cache.forget_inflight, signature))
        else:
            logger.debug("overlay_batch_shared", signature=signature)
        # Shield so one cancelled caller does not cancel the shared fetch.
        await asyncio.shield(task)

    async def _post_items(
        self, path: str, posts: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        cookies = {REFRESH_COOKIE_NAME: self._refresh_token} if self._refresh_token else None
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            cookies=cookies,
        ) as client:
            response = await client.post(f"{self._base_url}{path}", json={"posts": posts})

        if response.status_code >= 400:
            raise SoftOverlayError(
                f"Overlay request failed ({response.status_code})",
                status_code=response.status_code,
                detail=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise SoftOverlayError("Overlay response was not JSON") from exc

        items = data.get("items") if isinstance(data, dict) else None
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []

    def _store_batch(
        self,
        items: list[dict[str, Any]],
        requested: list[PostRef],
        make_key: Callable[[str, str], OverlayKey],
    ) -> None:
        found: set[OverlayKey] = set()
        for item in items:
            author = item.get("author")
            permlink = item.get("permlink")
            if not isinstance(author, str) or not isinstance(permlink, str):
                continue
            key = make_key(author, permlink)
            self._cache.set(key, item)
            found.add(key)

        for ref in requested:
            key = make_key(ref.author, ref.permlink)
            if key not in found:
                self._cache.set(key, None)

        self._cache.notify()

    def _collect(
        self, refs: list[PostRef], make_key: Callable[[PostRef], OverlayKey]
    ) -> dict[str, dict[str, Any]]:
        result: dict[str, dict[str, Any]] = {}
        for ref in refs:
            entry = self._cache.get(make_key(ref))
            if entry is not None and entry.value is not None:
                result[ref.key] = entry.value
        return result
