"""Unit tests for OverlayCache expiry, invalidation and listeners."""

from src.clients.overlay_cache import OverlayCache, OverlayKey

VOTE = OverlayKey("vote", "u1", "alice", "p1")
OTHER_VOTE = OverlayKey("vote", "u2", "alice", "p1")
POST = OverlayKey("post", None, "alice", "p1")


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_missing_and_negative_are_distinct() -> None:
    cache = OverlayCache()
    cache.set(POST, None)

    assert cache.get(VOTE) is None
    assert cache.get(POST).is_negative


def test_entries_without_ttl_never_expire() -> None:
    clock = FakeClock()
    cache = OverlayCache(clock=clock)
    cache.set(VOTE, {"weight": 1})

    clock.now += 10**6

    assert cache.get(VOTE).value == {"weight": 1}


def test_positive_and_negative_ttls_are_independent() -> None:
    clock = FakeClock()
    cache = OverlayCache(positive_ttl=60, negative_ttl=10, clock=clock)
    cache.set(VOTE, {"weight": 1})
    cache.set(POST, None)

    clock.now += 10

    assert cache.get(POST) is None
    assert cache.get(VOTE) is not None
    assert len(cache) == 1


def test_invalidate_post_drops_every_users_vote() -> None:
    cache = OverlayCache()
    for key in (VOTE, OTHER_VOTE, POST):
        cache.set(key, {})
    cache.set(OverlayKey("vote", "u1", "bob", "p2"), {})

    dropped = cache.invalidate(author="alice", permlink="p1")

    assert dropped == 3
    assert len(cache) == 1


def test_invalidate_user() -> None:
    cache = OverlayCache()
    cache.set(VOTE, {})
    cache.set(OTHER_VOTE, {})

    assert cache.invalidate(user_id="u1") == 1
    assert cache.get(OTHER_VOTE) is not None


def test_listeners() -> None:
    cache = OverlayCache()
    calls: list[str] = []

    def listener() -> None:
        calls.append("fired")

    cache.add_listener(listener)
    cache.notify()
    cache.remove_listener(listener)
    cache.remove_listener(listener)
    cache.notify()

    assert calls == ["fired"]
