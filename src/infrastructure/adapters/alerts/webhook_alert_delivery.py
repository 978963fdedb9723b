"""Webhook alert delivery.

POSTs the alert payload as JSON to a single configured URL. Delivery is
attempted once; failures are logged and reported as False, never raised.
"""

from __future__ import annotations

from typing import Any

import httpx
from structlog import get_logger

logger = get_logger(__name__)

DEFAULT_ALERT_TIMEOUT_SECONDS = 5.0


class WebhookAlertDelivery:
    """AlertDeliveryProtocol implementation backed by an HTTP webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        timeout_seconds: float = DEFAULT_ALERT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the webhook sink.

        Args:
            webhook_url: Destination URL; None disables delivery.
            timeout_seconds: Request timeout.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._webhook_url = webhook_url
        self._timeout = timeout_seconds
        self._transport = transport

    async def send_alert(self, payload: dict[str, Any]) -> bool:
        if not self._webhook_url:
            return False

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "alert_delivery_failed", alert_type=payload.get("type"), error=str(exc)
            )
            return False

        if response.status_code >= 400:
            logger.warning(
                "alert_delivery_rejected",
                alert_type=payload.get("type"),
                status=response.status_code,
            )
            return False

        logger.debug("alert_delivered", alert_type=payload.get("type"))
        return True
