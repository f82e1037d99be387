"""Notification Service Interface

Defines the contract for alerting operators about paid orders whose credits
could not be granted automatically.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ReconciliationAlert(BaseModel):
    order_id: str
    user_id: str
    external_order_id: Optional[str] = None
    external_payment_id: Optional[str] = None
    credits: int
    attempts: int
    error: Optional[str] = None
    request_id: Optional[str] = None
    detected_at: datetime = Field(default_factory=datetime.utcnow)


class NotificationService(ABC):
    """
    Abstract notification service for sending alerts

    Implementations can send notifications via:
    - Logs
    - Webhook (HTTP POST, e.g. a chat or paging integration)
    """

    @abstractmethod
    async def send_reconciliation_alert(self, alert: ReconciliationAlert) -> bool:
        """
        Send alert for a paid order that needs manual crediting

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
