"""Alert delivery stub for development and testing.

Records every alert payload in memory. Can be switched to raise, to check
that callers treat alerting as fire-and-forget.
"""

from __future__ import annotations

from typing import Any


class AlertDeliveryStub:
    """In-memory AlertDeliveryProtocol implementation.

    Attributes:
        alerts: Payloads received, in order.
    """

    def __init__(self) -> None:
        self.alerts: list[dict[str, Any]] = []
        self._error: Exception | None = None

    async def send_alert(self, payload: dict[str, Any]) -> bool:
        if self._error is not None:
            raise self._error
        self.alerts.append(dict(payload))
        return True

    def set_error(self, error: Exception | None) -> None:
        self._error = error

    def reset(self) -> None:
        self.alerts.clear()
        self._error = None
