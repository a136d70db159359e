"""Database-based usage storage implementation using SQLAlchemy."""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .database import DatabaseManager, DBUsageRecord
from .interface import StorageError, UsageStorageInterface
from .models import UsageRecord


logger = logging.getLogger(__name__)


class DatabaseUsageStorage(UsageStorageInterface):
    """Database-based usage storage using SQLAlchemy.

    Sessions are synchronous, so every operation runs in a worker thread to
    keep the event loop free.
    """

    def __init__(self, database_url: str):
        """
        Initialize database storage.

        Args:
            database_url: SQLAlchemy database URL
        """
        self.database_url = database_url
        self.db_manager = DatabaseManager(database_url)

    async def initialize(self) -> None:
        """Initialize the database."""
        try:
            await asyncio.to_thread(self.db_manager.initialize)
            logger.info(f"Initialized database usage storage at {self.database_url}")
        except RuntimeError as e:
            logger.error(f"Failed to initialize database usage storage: {e}")
            raise StorageError(str(e)) from e

    async def shutdown(self) -> None:
        """Shutdown database gracefully."""
        await asyncio.to_thread(self.db_manager.shutdown)
        logger.info("Database usage storage shutdown complete")

    @staticmethod
    def _db_to_pydantic_record(db_record: DBUsageRecord) -> UsageRecord:
        """Convert database model to Pydantic model."""
        return UsageRecord(
            user_id=db_record.user_id,
            day=date.fromisoformat(db_record.day),
            used=db_record.used
        )

    def _get_record_sync(self, user_id: str) -> Optional[UsageRecord]:
        with self.db_manager.get_session() as session:
            db_record = session.get(DBUsageRecord, user_id)
            if db_record is None:
                return None
            return self._db_to_pydantic_record(db_record)

    def _save_record_sync(self, record: UsageRecord) -> None:
        with self.db_manager.get_session() as session:
            db_record = session.get(DBUsageRecord, record.user_id)
            if db_record is None:
                session.add(DBUsageRecord(
                    user_id=record.user_id,
                    day=record.day.isoformat(),
                    used=record.used
                ))
                try:
                    session.commit()
                    return
                except IntegrityError:
                    # A concurrent save inserted the row first; overwrite it instead
                    session.rollback()
                    db_record = session.get(DBUsageRecord, record.user_id)
                    if db_record is None:
                        raise

            db_record.day = record.day.isoformat()
            db_record.used = record.used
            session.commit()

    async def get_record(self, user_id: str) -> Optional[UsageRecord]:
        """Get the usage record for a user."""
        try:
            return await asyncio.to_thread(self._get_record_sync, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load usage record for user {user_id}: {e}")
            raise StorageError(f"Cannot read usage record for {user_id}: {e}") from e

    async def save_record(self, record: UsageRecord) -> None:
        """Insert or overwrite the usage record."""
        try:
            await asyncio.to_thread(self._save_record_sync, record)
        except SQLAlchemyError as e:
            logger.error(f"Failed to save usage record for user {record.user_id}: {e}")
            raise StorageError(f"Cannot write usage record for {record.user_id}: {e}") from e

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on persistence backend."""
        return await asyncio.to_thread(self.db_manager.health_check)
