"""Request correlation id

Set once per request by the logging middleware and read by the log filter
and the audit logger.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> Optional[str]:
    return request_id_var.get()
