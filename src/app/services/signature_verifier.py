"""HMAC-SHA256 signature verification

The only trust boundary of the payment flows: client confirmations are
signed over "<order_id>|<payment_id>", webhook deliveries over the raw body.
"""

import hashlib
import hmac
from typing import Optional, Union


class HmacSignatureVerifier:
    def __init__(self, secret: Optional[str]):
        self._secret = secret or ""

    @property
    def is_configured(self) -> bool:
        return bool(self._secret)

    @staticmethod
    def payment_message(external_order_id: str, external_payment_id: str) -> str:
        return f"{external_order_id}|{external_payment_id}"

    def sign(self, message: Union[str, bytes]) -> str:
        if not self.is_configured:
            raise RuntimeError("Signature secret is not configured")
        if isinstance(message, str):
            message = message.encode("utf-8")
        return hmac.new(self._secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def verify(self, message: Union[str, bytes], signature: Optional[str]) -> bool:
        """Constant-time comparison; any missing input is a mismatch"""
        if not self.is_configured or not signature:
            return False
        expected = self.sign(message)
        return hmac.compare_digest(expected, signature.strip().lower())
