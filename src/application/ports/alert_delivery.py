"""Alert delivery port for operational alerts.

Alerts are fire-and-forget. Implementations log their own delivery failures
and must never raise into the caller.
"""

from __future__ import annotations

from typing import Any, Protocol


class AlertDeliveryProtocol(Protocol):
    """Protocol for alert sinks."""

    async def send_alert(self, payload: dict[str, Any]) -> bool:
        """Deliver one alert payload.

        Returns:
            True if the sink accepted it, False otherwise (including when
            no sink is configured).
        """
        ...
