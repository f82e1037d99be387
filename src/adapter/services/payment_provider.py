"""Payment Provider over HTTP

Creates orders through the provider's REST API (Razorpay-compatible
``POST /v1/orders`` with basic auth).
"""

import logging
from typing import Dict
import httpx
from src.app.errors import PaymentProviderError
from src.app.services.payment_provider import PaymentProvider, ProviderOrder

logger = logging.getLogger(__name__)


class HttpPaymentProvider(PaymentProvider):

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport = None,
    ):
        """
        Initialize the provider client

        Args:
            base_url: Provider API root (e.g., https://api.razorpay.com)
            key_id: Public key id (also returned to checkout clients)
            key_secret: Secret used for basic auth
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._key_id = key_id
        self._key_secret = key_secret
        self.timeout = timeout
        self._transport = transport

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def is_configured(self) -> bool:
        return bool(self._key_id and self._key_secret)

    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: Dict[str, str]
    ) -> ProviderOrder:
        if not self.is_configured:
            raise PaymentProviderError("Payment service not configured")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self._key_id, self._key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/v1/orders", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Payment provider unreachable: {e!r}")
            raise PaymentProviderError("Payment provider unreachable") from e

        if response.status_code >= 400:
            description = None
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                pass
            logger.error(
                f"Payment provider rejected order creation "
                f"(status={response.status_code}, description={description})"
            )
            raise PaymentProviderError(
                "Payment provider rejected order creation",
                description=description,
                status_code=response.status_code,
            )

        body = response.json()
        return ProviderOrder(
            id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            status=body.get("status"),
        )
