"""Audit Logger

Appends structured AuditLogEntry rows for every payment attempt and outcome.
Audit writes never change a payment outcome: a failed write is logged and
reported as False.
"""

import json
import logging
from typing import Any, Dict, Optional
from libs.context import get_request_id
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.audit_log_repository import AuditLogRepository
from src.domain.audit_log import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, uow: UnitOfWork, audit_repo: AuditLogRepository):
        self.uow = uow
        self.audit_repo = audit_repo

    async def record(
        self,
        event_type: str,
        *,
        status: str,
        user_id: Optional[str] = None,
        order_id: Optional[str] = None,
        external_order_id: Optional[str] = None,
        external_payment_id: Optional[str] = None,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        manual_fix_required: bool = False,
        request_id: Optional[str] = None,
    ) -> bool:
        """
        Append one audit entry and commit it

        Args:
            event_type: Event name (e.g., 'payment_verified')
            status: Outcome label (e.g., 'success', 'failed')
            manual_fix_required: Flags the order for operator reconciliation
            request_id: Correlation id (defaults to the current request's)

        Returns:
            True if the entry was persisted, False otherwise
        """
        entry = AuditLogEntry(
            request_id=request_id or get_request_id(),
            event_type=event_type,
            user_id=user_id,
            order_id=order_id,
            external_order_id=external_order_id,
            external_payment_id=external_payment_id,
            status=status,
            error=error,
            metadata_json=json.dumps(metadata, default=str) if metadata else None,
            manual_fix_required=manual_fix_required,
        )

        try:
            await self.audit_repo.append(entry)
            await self.uow.commit()
            return True
        except Exception as e:
            await self.uow.rollback()
            logger.error(
                f"Failed to write audit entry {event_type} "
                f"(order={order_id or external_order_id}, status={status}): {e}"
            )
            return False
