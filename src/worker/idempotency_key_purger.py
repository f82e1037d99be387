"""Idempotency Key Purge Background Worker

Deletes webhook idempotency keys past their retention window.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.idempotency_key_repository import SqlAlchemyIdempotencyKeyRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.payments import PurgeIdempotencyKeys
from src.app.use_cases.payments.dtos import PurgeResultDTO

logger = logging.getLogger(__name__)


class IdempotencyKeyPurgerWorker:
    """
    Background worker for idempotency key retention

    Features:
    - Deletes keys whose expires_at has passed
    - Can run once or continuously
    - Configurable interval (default: hourly)

    Usage:
        # Run once
        worker = IdempotencyKeyPurgerWorker()
        result = await worker.run_once()

        # Run continuously
        await worker.run_forever(interval_seconds=3600)
    """

    def __init__(self, db_uri: Optional[str] = None):
        """
        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("IdempotencyKeyPurgerWorker initialized")

    async def run_once(self, now: Optional[datetime] = None) -> PurgeResultDTO:
        now = now or datetime.utcnow()

        if not ApplicationConfig.IDEMPOTENCY_PURGE_ENABLED:
            logger.info("Idempotency key purge is disabled, skipping")
            return PurgeResultDTO(deleted_count=0, purged_before=now, execution_time_ms=0)

        async with self.async_session_factory() as session:
            use_case = PurgeIdempotencyKeys(
                uow=SqlAlchemyUnitOfWork(session),
                key_repo=SqlAlchemyIdempotencyKeyRepository(session),
            )

            result = await use_case.execute(now)

            if result.is_err():
                logger.error(f"Purge failed: {result.error.message}")
                raise RuntimeError(f"Purge failed: {result.error.message}")

            return result.value

    async def run_forever(self, interval_seconds: int = 3600):
        logger.info(f"Starting idempotency key purge with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Purge cycle complete. Deleted {result.deleted_count} keys "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Purge cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("IdempotencyKeyPurgerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.idempotency_key_purger --once

        # Run continuously with custom interval (in seconds)
        python -m src.worker.idempotency_key_purger --interval 600
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Idempotency Key Purge Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.IDEMPOTENCY_PURGE_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: IDEMPOTENCY_PURGE_INTERVAL_SECONDS)"
    )
    args = parser.parse_args()

    worker = IdempotencyKeyPurgerWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Purge complete:")
            print(f"  Keys deleted: {result.deleted_count}")
            print(f"  Expired before: {result.purged_before.isoformat()}")
            print(f"  Execution time: {result.execution_time_ms}ms")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
