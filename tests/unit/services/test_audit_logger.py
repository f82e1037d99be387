"""Unit tests for AuditLogger"""

import json
import pytest
from unittest.mock import AsyncMock

from libs.context import request_id_var
from src.app.services.audit_logger import AuditLogger
from src.domain.audit_log import AuditLogEntry


class TestAuditLogger:

    @pytest.fixture
    def mock_audit_repo(self):
        return AsyncMock()

    @pytest.fixture
    def audit_logger(self, mock_uow, mock_audit_repo):
        return AuditLogger(mock_uow, mock_audit_repo)

    @pytest.mark.asyncio
    async def test_record_appends_and_commits(self, audit_logger, mock_uow, mock_audit_repo):
        # Act
        written = await audit_logger.record(
            "payment_verified",
            status="success",
            user_id="user_1",
            order_id="o1",
            metadata={"creditsAdded": 20},
        )

        # Assert
        assert written is True
        entry = mock_audit_repo.append.call_args.args[0]
        assert isinstance(entry, AuditLogEntry)
        assert entry.event_type == "payment_verified"
        assert entry.status == "success"
        assert json.loads(entry.metadata_json) == {"creditsAdded": 20}
        assert entry.manual_fix_required is False
        mock_uow.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_request_id_comes_from_context(self, audit_logger, mock_audit_repo):
        """Given a request in flight, then its id is stamped on the entry"""
        # Arrange
        token = request_id_var.set("req-123")

        # Act
        try:
            await audit_logger.record("order_created", status="created")
        finally:
            request_id_var.reset(token)

        # Assert
        assert mock_audit_repo.append.call_args.args[0].request_id == "req-123"

    @pytest.mark.asyncio
    async def test_write_failure_never_raises(self, audit_logger, mock_uow, mock_audit_repo):
        """Given the audit table is unavailable, then record reports False and rolls back"""
        # Arrange
        mock_audit_repo.append.side_effect = RuntimeError("disk full")

        # Act
        written = await audit_logger.record("payment_verified", status="success")

        # Assert
        assert written is False
        mock_uow.rollback.assert_awaited_once()
