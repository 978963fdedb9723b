"""Alert delivery adapters."""

from src.infrastructure.adapters.alerts.webhook_alert_delivery import (
    WebhookAlertDelivery,
)

__all__: list[str] = ["WebhookAlertDelivery"]
