"""Unit tests for VerifyPayment use case"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.errors import LedgerTransitionError
from src.app.services.credit_reconciler import CreditGrantResult
from src.app.services.ledger_transition import LedgerTransitionEngine, TransitionResult
from src.app.services.signature_verifier import HmacSignatureVerifier
from src.app.use_cases.payments.dtos import VerifyPaymentCommandDTO
from src.app.use_cases.payments.verify_payment import VerifyPayment
from src.domain.payment_order import OrderStatus

SECRET = "key_secret"
VERIFIER = HmacSignatureVerifier(SECRET)


def _command(user_id="user_abc123", payment_id="pay_o1", signature=None):
    return VerifyPaymentCommandDTO(
        user_id=user_id,
        external_order_id="order_o1",
        external_payment_id=payment_id,
        signature=signature or VERIFIER.sign(f"order_o1|{payment_id}"),
    )


class TestVerifyPayment:

    @pytest.fixture
    def mock_order_repo(self):
        return AsyncMock()

    @pytest.fixture
    def mock_engine(self):
        engine = MagicMock()
        engine.confirm = AsyncMock()
        return engine

    @pytest.fixture
    def mock_reconciler(self):
        reconciler = MagicMock()
        reconciler.grant = AsyncMock(
            return_value=CreditGrantResult(credited=True, credits=20, attempts=1)
        )
        return reconciler

    @pytest.fixture
    def use_case(self, mock_order_repo, mock_engine, mock_reconciler, mock_audit_logger):
        return VerifyPayment(
            mock_order_repo, VERIFIER, mock_engine, mock_reconciler, mock_audit_logger
        )

    @pytest.mark.asyncio
    async def test_winner_grants_credits(
        self, use_case, mock_order_repo, mock_engine, mock_reconciler, pending_order, paid_order
    ):
        """Given a valid signature on a pending order, then the winner credits 20"""
        # Arrange
        mock_order_repo.get_by_external_order_id.return_value = pending_order
        mock_engine.confirm.return_value = TransitionResult(won=True, order=paid_order)

        # Act
        result = await use_case.execute(_command())

        # Assert
        assert result.is_ok()
        assert result.value.success is True
        assert result.value.credits_added == 20
        mock_engine.confirm.assert_awaited_once_with("o1", "pay_o1")
        mock_reconciler.grant.assert_awaited_once_with(paid_order)

    @pytest.mark.asyncio
    async def test_forged_signature_mutates_nothing(
        self, use_case, mock_order_repo, mock_engine, mock_reconciler, mock_audit_logger
    ):
        """Given a forged signature, then the request is rejected with no state change"""
        # Arrange
        command = _command(signature=VERIFIER.sign("order_o1|pay_other"))

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.error.code == "INVALID_SIGNATURE"
        mock_order_repo.get_by_external_order_id.assert_not_called()
        mock_engine.confirm.assert_not_called()
        mock_reconciler.grant.assert_not_called()
        assert mock_audit_logger.record.call_args.args[0] == "signature_verification_failed"

    @pytest.mark.asyncio
    async def test_loser_returns_same_success_without_credit(
        self, use_case, mock_order_repo, mock_engine, mock_reconciler, pending_order, paid_order
    ):
        """Given the webhook won the race, then this caller reports success and does not credit"""
        # Arrange
        mock_order_repo.get_by_external_order_id.return_value = pending_order
        mock_engine.confirm.return_value = TransitionResult(won=False, order=paid_order)

        # Act
        result = await use_case.execute(_command())

        # Assert
        assert result.is_ok()
        assert result.value.credits_added == 20
        mock_reconciler.grant.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_paid_short_circuits(
        self, use_case, mock_order_repo, mock_engine, mock_reconciler, paid_order, mock_audit_logger
    ):
        # Arrange
        mock_order_repo.get_by_external_order_id.return_value = paid_order

        # Act
        result = await use_case.execute(_command())

        # Assert
        assert result.value.message == "Payment already verified"
        assert result.value.credits_added == 20
        mock_engine.confirm.assert_not_called()
        mock_reconciler.grant.assert_not_called()
        assert mock_audit_logger.record.call_args.args[0] == "payment_already_verified"

    @pytest.mark.asyncio
    async def test_unknown_order(self, use_case, mock_order_repo):
        mock_order_repo.get_by_external_order_id.return_value = None

        result = await use_case.execute(_command())

        assert result.error.code == "ORDER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_other_users_order_is_forbidden(
        self, use_case, mock_order_repo, mock_engine, paid_order
    ):
        """Given someone else's (even paid) order, then FORBIDDEN is returned"""
        # Arrange
        mock_order_repo.get_by_external_order_id.return_value = paid_order

        # Act
        result = await use_case.execute(_command(user_id="intruder"))

        # Assert
        assert result.error.code == "FORBIDDEN"
        mock_engine.confirm.assert_not_called()

    @pytest.mark.asyncio
    async def test_credit_failure_still_reports_success(
        self, use_case, mock_order_repo, mock_engine, mock_reconciler, pending_order, paid_order,
        mock_audit_logger,
    ):
        """Given crediting exhausted its retries, then the payment response is still a success"""
        # Arrange
        mock_order_repo.get_by_external_order_id.return_value = pending_order
        mock_engine.confirm.return_value = TransitionResult(won=True, order=paid_order)
        mock_reconciler.grant.return_value = CreditGrantResult(
            credited=False, credits=20, attempts=2, error="ledger down"
        )

        # Act
        result = await use_case.execute(_command())

        # Assert
        assert result.is_ok()
        assert result.value.success is True
        metadata = mock_audit_logger.record.call_args.kwargs["metadata"]
        assert metadata["creditGrant"] == "manual_fix_required"

    @pytest.mark.asyncio
    async def test_transition_failure_surfaces(
        self, use_case, mock_order_repo, mock_engine, mock_reconciler, pending_order
    ):
        # Arrange
        mock_order_repo.get_by_external_order_id.return_value = pending_order
        mock_engine.confirm.side_effect = LedgerTransitionError("db down")

        # Act
        result = await use_case.execute(_command())

        # Assert
        assert result.error.code == "LEDGER_TRANSITION_FAILED"
        mock_reconciler.grant.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_secret(self, mock_order_repo, mock_engine, mock_reconciler, mock_audit_logger):
        use_case = VerifyPayment(
            mock_order_repo, HmacSignatureVerifier(""), mock_engine, mock_reconciler, mock_audit_logger
        )

        result = await use_case.execute(_command())

        assert result.error.code == "PAYMENT_NOT_CONFIGURED"


class TestVerifyPaymentWithTransitionEngine:
    """VerifyPayment wired to the real LedgerTransitionEngine over a mocked repository"""

    @pytest.mark.asyncio
    async def test_read_failure_after_winning_update_still_credits(
        self, mock_uow, mock_audit_logger, pending_order
    ):
        """
        Given: The winning update commits and every later read of the order fails
        When: The client confirmation is processed
        Then: Credits are still granted for the order and the payment succeeds
        """
        # Arrange
        order_repo = AsyncMock()
        order_repo.get_by_external_order_id.return_value = pending_order
        order_repo.get_by_id.side_effect = [pending_order, ConnectionError("db blip")]
        order_repo.mark_paid_if_unpaid.return_value = True
        reconciler = MagicMock()
        reconciler.grant = AsyncMock(
            return_value=CreditGrantResult(credited=True, credits=20, attempts=1)
        )
        use_case = VerifyPayment(
            order_repo,
            VERIFIER,
            LedgerTransitionEngine(mock_uow, order_repo),
            reconciler,
            mock_audit_logger,
        )

        # Act
        result = await use_case.execute(_command())

        # Assert
        assert result.is_ok()
        assert result.value.credits_added == 20
        reconciler.grant.assert_awaited_once()
        granted = reconciler.grant.call_args.args[0]
        assert granted.id == "o1"
        assert granted.user_id == "user_abc123"
        assert granted.credits_purchased == 20
        assert granted.status == OrderStatus.PAID
