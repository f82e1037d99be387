"""Unit tests for IdempotencyKeyPurgerWorker

Tests cover:
- Worker initialization with configuration
- run_once execution
- Purge disabled scenario
- Error handling
- Shutdown and cleanup
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

from src.worker.idempotency_key_purger import IdempotencyKeyPurgerWorker
from src.app.use_cases.payments.dtos import PurgeResultDTO
from libs.result import Error, Return


def _session_factory():
    mock_session = MagicMock()
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=mock_session)


class TestIdempotencyKeyPurgerWorkerInit:

    @patch("src.worker.idempotency_key_purger.ApplicationConfig")
    @patch("src.worker.idempotency_key_purger.create_async_engine")
    def test_initializes_with_default_config(self, mock_create_engine, mock_app_config):
        """
        Given: No custom configuration provided
        When: Worker is initialized
        Then: Uses DB_URI from ApplicationConfig
        """
        # Arrange
        mock_app_config.DB_URI = "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.return_value = MagicMock()

        # Act
        worker = IdempotencyKeyPurgerWorker()

        # Assert
        assert worker.db_uri == "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.assert_called_once()

    @patch("src.worker.idempotency_key_purger.create_async_engine")
    def test_initializes_with_custom_db_uri(self, mock_create_engine):
        worker = IdempotencyKeyPurgerWorker(db_uri="sqlite+aiosqlite:///custom.db")

        assert worker.db_uri == "sqlite+aiosqlite:///custom.db"


@pytest.mark.asyncio
class TestIdempotencyKeyPurgerWorkerRunOnce:

    @patch("src.worker.idempotency_key_purger.ApplicationConfig")
    @patch("src.worker.idempotency_key_purger.PurgeIdempotencyKeys")
    @patch("src.worker.idempotency_key_purger.create_async_engine")
    @patch("src.worker.idempotency_key_purger.sessionmaker")
    async def test_run_once_executes_purge(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        """
        Given: Purge is enabled
        When: run_once is called
        Then: Executes the purge use case with the given time
        """
        # Arrange
        mock_app_config.IDEMPOTENCY_PURGE_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        now = datetime(2024, 6, 1)
        mock_use_case = MagicMock()
        mock_use_case.execute = AsyncMock(
            return_value=Return.ok(
                PurgeResultDTO(deleted_count=5, purged_before=now, execution_time_ms=3)
            )
        )
        mock_use_case_class.return_value = mock_use_case

        # Act
        worker = IdempotencyKeyPurgerWorker(db_uri="sqlite+aiosqlite://")
        result = await worker.run_once(now)

        # Assert
        assert result.deleted_count == 5
        mock_use_case.execute.assert_awaited_once_with(now)

    @patch("src.worker.idempotency_key_purger.ApplicationConfig")
    @patch("src.worker.idempotency_key_purger.PurgeIdempotencyKeys")
    @patch("src.worker.idempotency_key_purger.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        """
        Given: Purge is disabled
        When: run_once is called
        Then: Returns an empty result without touching the database
        """
        # Arrange
        mock_app_config.IDEMPOTENCY_PURGE_ENABLED = False

        # Act
        worker = IdempotencyKeyPurgerWorker(db_uri="sqlite+aiosqlite://")
        result = await worker.run_once()

        # Assert
        assert result.deleted_count == 0
        mock_use_case_class.assert_not_called()

    @patch("src.worker.idempotency_key_purger.ApplicationConfig")
    @patch("src.worker.idempotency_key_purger.PurgeIdempotencyKeys")
    @patch("src.worker.idempotency_key_purger.create_async_engine")
    @patch("src.worker.idempotency_key_purger.sessionmaker")
    async def test_run_once_raises_on_error(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        # Arrange
        mock_app_config.IDEMPOTENCY_PURGE_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_use_case = MagicMock()
        mock_use_case.execute = AsyncMock(
            return_value=Return.err(Error(code="PURGE_FAILED", message="Failed to purge idempotency keys"))
        )
        mock_use_case_class.return_value = mock_use_case

        # Act & Assert
        worker = IdempotencyKeyPurgerWorker(db_uri="sqlite+aiosqlite://")
        with pytest.raises(RuntimeError, match="Purge failed"):
            await worker.run_once()

    @patch("src.worker.idempotency_key_purger.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine):
        # Arrange
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        mock_create_engine.return_value = mock_engine

        # Act
        worker = IdempotencyKeyPurgerWorker(db_uri="sqlite+aiosqlite://")
        await worker.shutdown()

        # Assert
        mock_engine.dispose.assert_awaited_once()
