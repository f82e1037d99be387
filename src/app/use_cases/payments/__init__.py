from .create_order import CreateOrder
from .verify_payment import VerifyPayment
from .handle_webhook import HandleWebhook
from .get_account_summary import GetAccountSummary
from .purge_idempotency_keys import PurgeIdempotencyKeys

__all__ = [
    "CreateOrder",
    "VerifyPayment",
    "HandleWebhook",
    "GetAccountSummary",
    "PurgeIdempotencyKeys",
]
