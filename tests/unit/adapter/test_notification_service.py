"""Unit tests for reconciliation alert delivery"""

import json
import httpx
import pytest

from src.adapter.services.notification_service import (
    CompositeNotificationService,
    LoggingNotificationService,
    WebhookNotificationService,
    create_notification_service,
)
from src.app.services.notification_service import ReconciliationAlert


@pytest.fixture
def alert():
    return ReconciliationAlert(
        order_id="o1",
        user_id="user_abc123",
        external_order_id="order_o1",
        credits=20,
        attempts=2,
        error="ledger unavailable",
    )


class TestNotificationServices:

    @pytest.mark.asyncio
    async def test_logging_alert_is_critical(self, alert, caplog):
        # Act
        with caplog.at_level("CRITICAL"):
            sent = await LoggingNotificationService().send_reconciliation_alert(alert)

        # Assert
        assert sent is True
        assert "o1" in caplog.text

    @pytest.mark.asyncio
    async def test_webhook_posts_alert(self, alert):
        # Arrange
        received = []

        def handler(request: httpx.Request):
            received.append(json.loads(request.content))
            return httpx.Response(204)

        service = WebhookNotificationService(
            "https://hooks.test/alerts", transport=httpx.MockTransport(handler)
        )

        # Act
        sent = await service.send_reconciliation_alert(alert)

        # Assert
        assert sent is True
        assert received[0]["type"] == "reconciliation_alert"
        assert received[0]["credits"] == 20

    @pytest.mark.asyncio
    async def test_webhook_failure_returns_false(self, alert):
        service = WebhookNotificationService(
            "https://hooks.test/alerts", transport=httpx.MockTransport(lambda r: httpx.Response(500))
        )

        assert await service.send_reconciliation_alert(alert) is False

    def test_factory_without_webhook_logs_only(self):
        assert isinstance(create_notification_service(None), LoggingNotificationService)

    def test_factory_with_webhook_is_composite(self):
        service = create_notification_service("https://hooks.test/alerts")

        assert isinstance(service, CompositeNotificationService)
        assert len(service.services) == 2
