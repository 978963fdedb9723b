"""Time Authority Protocol - single source of "now" for services.

Services that compare against wall-clock time (session expiry, challenge
windows, claim leases, dead-letter cutoffs) inject a TimeAuthorityProtocol
implementation instead of reading the system clock directly. Tests inject
FakeTimeAuthority from tests/helpers/fake_time_authority.py and move the
clock explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Abstract interface for time authority.

    Example usage:
        class SessionService:
            def __init__(self, time_authority: TimeAuthorityProtocol) -> None:
                self._time = time_authority

            async def resolve(self, token: str) -> str:
                now = self._time.utcnow()
                ...
    """

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time, timezone-aware (UTC)."""
        ...

    @abstractmethod
    def utcnow(self) -> datetime:
        """Return the current UTC time as a timezone-aware datetime."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Return a monotonic clock value in seconds.

        Use this for TTLs and elapsed time, not for stored timestamps. Only
        differences between values are meaningful.
        """
        ...
