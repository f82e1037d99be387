"""Notification Service Implementations

Provides concrete implementations for sending reconciliation alerts.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import NotificationService, ReconciliationAlert

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs alerts

    Always configured, so a manual-fix case is never silent.
    """

    async def send_reconciliation_alert(self, alert: ReconciliationAlert) -> bool:
        logger.critical(
            f"[RECONCILIATION ALERT] Order: {alert.order_id}, "
            f"User: {alert.user_id}, "
            f"Credits: {alert.credits}, "
            f"Attempts: {alert.attempts}, "
            f"Error: {alert.error}"
        )
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that sends alerts via HTTP webhook

    Sends JSON payload to configured webhook URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport = None):
        """
        Initialize webhook notification service

        Args:
            webhook_url: URL to POST alerts to
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    async def send_reconciliation_alert(self, alert: ReconciliationAlert) -> bool:
        payload = {
            "type": "reconciliation_alert",
            "order_id": alert.order_id,
            "user_id": alert.user_id,
            "external_order_id": alert.external_order_id,
            "external_payment_id": alert.external_payment_id,
            "credits": alert.credits,
            "attempts": alert.attempts,
            "error": alert.error,
            "request_id": alert.request_id,
            "detected_at": alert.detected_at.isoformat(),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
                logger.info(
                    f"Webhook notification sent for order {alert.order_id} to {self.webhook_url}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send webhook notification for order {alert.order_id}: {e}"
            )
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + webhook).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def send_reconciliation_alert(self, alert: ReconciliationAlert) -> bool:
        """
        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.send_reconciliation_alert(alert):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
