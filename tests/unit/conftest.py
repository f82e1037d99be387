import pytest
from unittest.mock import AsyncMock, MagicMock
from src.domain.payment_order import PaymentOrder, OrderStatus


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def mock_audit_logger():
    audit_logger = MagicMock()
    audit_logger.record = AsyncMock(return_value=True)
    return audit_logger


def _order(**overrides):
    fields = dict(
        id="o1",
        user_id="user_abc123",
        plan_id="essentials",
        plan_name="Essentials",
        amount=12900,
        currency="INR",
        credits_purchased=20,
        external_order_id="order_o1",
        status=OrderStatus.PENDING,
    )
    fields.update(overrides)
    return PaymentOrder(**fields)


@pytest.fixture
def pending_order():
    """Order o1: 12900 INR, 20 credits, awaiting payment"""
    return _order()


@pytest.fixture
def paid_order():
    return _order(status=OrderStatus.PAID, external_payment_id="pay_o1")
