"""Payment Provider Interface

Charge-handle creation at the external payment provider.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
from pydantic import BaseModel


class ProviderOrder(BaseModel):
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    status: Optional[str] = None


class PaymentProvider(ABC):

    @property
    @abstractmethod
    def key_id(self) -> str:
        """Public key id handed to the checkout client"""
        pass

    @abstractmethod
    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: Dict[str, str]
    ) -> ProviderOrder:
        """
        Create a provider order

        Raises:
            PaymentProviderError: If the provider rejects or cannot be reached
        """
        pass
