"""FakeTimeAuthority - controllable time authority for deterministic tests.

Usage:

    >>> fake_time = FakeTimeAuthority(
    ...     frozen_at=datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    ... )
    >>> service = SessionService(store, time_authority=fake_time)
    >>> fake_time.advance(days=31)  # every session issued above is now expired

The monotonic clock moves with advance(), so the same fake can drive both
stored timestamps and OverlayCache TTLs (pass ``fake_time.monotonic`` as the
cache clock).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from src.application.ports.time_authority import TimeAuthorityProtocol

DEFAULT_FROZEN_AT = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class FakeTimeAuthority(TimeAuthorityProtocol):
    """Time authority whose clock only moves when a test moves it."""

    def __init__(
        self,
        frozen_at: datetime | None = None,
        *,
        start_monotonic: float = 0.0,
    ) -> None:
        """Initialize the fake time authority.

        Args:
            frozen_at: Starting time, 2026-01-01T00:00:00Z by default. A naive
                datetime is taken as UTC.
            start_monotonic: Starting value of the monotonic clock.
        """
        frozen_at = frozen_at or DEFAULT_FROZEN_AT
        if frozen_at.tzinfo is None:
            frozen_at = frozen_at.replace(tzinfo=timezone.utc)

        self._current_time = frozen_at
        self._monotonic = start_monotonic

    def now(self) -> datetime:
        return self._current_time

    def utcnow(self) -> datetime:
        return self._current_time

    def monotonic(self) -> float:
        return self._monotonic

    def advance(
        self,
        delta: timedelta | None = None,
        *,
        days: float = 0,
        hours: float = 0,
        minutes: float = 0,
        seconds: float = 0,
    ) -> None:
        """Move both clocks forward.

        Either pass a timedelta or keyword amounts, which are added together.

        Raises:
            ValueError: If the total is negative.
        """
        step = delta or timedelta()
        step += timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds)
        if step < timedelta(0):
            raise ValueError("Cannot advance time backwards; use set_time()")
        self._current_time += step
        self._monotonic += step.total_seconds()

    def set_time(self, new_time: datetime) -> None:
        """Jump the wall clock. The monotonic clock is left alone."""
        if new_time.tzinfo is None:
            new_time = new_time.replace(tzinfo=timezone.utc)
        self._current_time = new_time
