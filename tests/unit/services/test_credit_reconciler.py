"""Unit tests for CreditReconciler

Covers single-attempt success, fail-then-succeed within the configured
bound, and exhaustion leading to a manual-fix audit entry and alert.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, call

from src.app.services.credit_reconciler import CreditReconciler
from src.app.services.notification_service import ReconciliationAlert


class TestCreditReconciler:

    @pytest.fixture
    def mock_ledger_repo(self):
        return AsyncMock()

    @pytest.fixture
    def mock_notifier(self):
        return AsyncMock()

    @pytest.fixture
    def sleep(self):
        return AsyncMock()

    @pytest.fixture
    def reconciler(self, mock_uow, mock_ledger_repo, mock_audit_logger, mock_notifier, sleep):
        return CreditReconciler(
            mock_uow,
            mock_ledger_repo,
            mock_audit_logger,
            max_attempts=2,
            retry_delay=0.5,
            backoff_multiplier=1.0,
            attempt_timeout=1.0,
            notifier=mock_notifier,
            sleep=sleep,
        )

    @pytest.mark.asyncio
    async def test_grant_succeeds_first_time(
        self, reconciler, mock_uow, mock_ledger_repo, mock_audit_logger, paid_order, sleep
    ):
        """Given a healthy ledger, when granting, then credits are added once and audited"""
        # Act
        result = await reconciler.grant(paid_order)

        # Assert
        assert result.credited is True
        assert result.credits == 20
        assert result.attempts == 1
        mock_ledger_repo.increment_balance.assert_awaited_once_with("user_abc123", 20)
        mock_uow.commit.assert_awaited_once()
        sleep.assert_not_awaited()
        assert mock_audit_logger.record.call_args.args[0] == "credits_granted"

    @pytest.mark.asyncio
    async def test_fail_then_succeed_increments_once(
        self, reconciler, mock_uow, mock_ledger_repo, mock_audit_logger, paid_order, sleep
    ):
        """Given the first increment fails, when retried within 2 attempts, then the balance grows once"""
        # Arrange
        mock_ledger_repo.increment_balance.side_effect = [RuntimeError("connection reset"), None]

        # Act
        result = await reconciler.grant(paid_order)

        # Assert
        assert result.credited is True
        assert result.attempts == 2
        assert mock_ledger_repo.increment_balance.await_count == 2
        mock_uow.rollback.assert_awaited_once()
        mock_uow.commit.assert_awaited_once()
        sleep.assert_awaited_once_with(0.5)
        events = [c.args[0] for c in mock_audit_logger.record.call_args_list]
        assert events == ["credit_grant_retry", "credits_granted"]

    @pytest.mark.asyncio
    async def test_exhaustion_flags_manual_fix(
        self, reconciler, mock_uow, mock_ledger_repo, mock_audit_logger, mock_notifier, paid_order
    ):
        """Given every attempt fails, then the order is flagged for manual fix and no error is raised"""
        # Arrange
        mock_ledger_repo.increment_balance.side_effect = RuntimeError("ledger unavailable")

        # Act
        result = await reconciler.grant(paid_order)

        # Assert
        assert result.credited is False
        assert result.attempts == 2
        assert "ledger unavailable" in result.error
        mock_uow.commit.assert_not_awaited()

        final = mock_audit_logger.record.call_args
        assert final.args[0] == "credit_grant_failed"
        assert final.kwargs["status"] == "manual_fix_required"
        assert final.kwargs["manual_fix_required"] is True
        assert final.kwargs["order_id"] == "o1"
        assert final.kwargs["metadata"] == {"credits": 20, "user_id": "user_abc123", "attempts": 2}

        alert = mock_notifier.send_reconciliation_alert.call_args.args[0]
        assert isinstance(alert, ReconciliationAlert)
        assert alert.order_id == "o1"
        assert alert.credits == 20

    @pytest.mark.asyncio
    async def test_slow_increment_counts_as_failed_attempt(
        self, mock_uow, mock_ledger_repo, mock_audit_logger, paid_order, sleep
    ):
        """Given an increment slower than the attempt timeout, then it is retried and then escalated"""
        # Arrange
        async def hang(*args):
            await asyncio.sleep(5)

        mock_ledger_repo.increment_balance.side_effect = hang
        reconciler = CreditReconciler(
            mock_uow, mock_ledger_repo, mock_audit_logger,
            max_attempts=2, attempt_timeout=0.01, sleep=sleep,
        )

        # Act
        result = await reconciler.grant(paid_order)

        # Assert
        assert result.credited is False
        assert "timed out" in result.error
        assert mock_uow.rollback.await_count == 2

    @pytest.mark.asyncio
    async def test_alert_failure_does_not_raise(
        self, reconciler, mock_ledger_repo, mock_notifier, paid_order
    ):
        # Arrange
        mock_ledger_repo.increment_balance.side_effect = RuntimeError("down")
        mock_notifier.send_reconciliation_alert.side_effect = RuntimeError("webhook down")

        # Act
        result = await reconciler.grant(paid_order)

        # Assert
        assert result.credited is False

    @pytest.mark.asyncio
    async def test_retry_audit_carries_attempt_number(
        self, reconciler, mock_ledger_repo, mock_audit_logger, paid_order
    ):
        mock_ledger_repo.increment_balance.side_effect = [RuntimeError("blip"), None]

        await reconciler.grant(paid_order)

        assert mock_audit_logger.record.call_args_list[0] == call(
            "credit_grant_retry",
            status="retrying",
            user_id="user_abc123",
            order_id="o1",
            external_order_id="order_o1",
            error="blip",
            metadata={"attempt": 1, "credits": 20},
        )
