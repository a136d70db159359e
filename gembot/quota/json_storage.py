"""JSON-based usage record storage implementation."""

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import ValidationError

from .interface import StorageError, UsageStorageInterface
from .models import UsageRecord


logger = logging.getLogger(__name__)


class JsonUsageStorage(UsageStorageInterface):
    """JSON file-based usage storage, one document per user."""

    def __init__(self, storage_dir: Path = None):
        """
        Initialize JSON storage.

        Args:
            storage_dir: Directory to store usage documents
        """
        self.storage_dir = Path(storage_dir) if storage_dir else Path("data/usage")
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the storage directory."""
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Initialized JSON usage storage at {self.storage_dir}")
        except OSError as e:
            logger.error(f"Failed to initialize JSON usage storage: {e}")
            raise StorageError(f"Cannot create storage directory {self.storage_dir}: {e}") from e

    async def shutdown(self) -> None:
        """Nothing is buffered, so there is nothing to flush."""
        logger.info("JSON usage storage shutdown complete")

    def _get_record_file(self, user_id: str) -> Path:
        """Get the document path for a user."""
        safe_name = quote(user_id, safe="")
        return self.storage_dir / f"{safe_name}.json"

    def _read_file(self, record_file: Path) -> Optional[UsageRecord]:
        if not record_file.exists():
            return None

        with open(record_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        return UsageRecord.model_validate(data)

    def _write_file(self, record: UsageRecord) -> None:
        record_file = self._get_record_file(record.user_id)
        tmp_file = record_file.with_suffix(".json.tmp")

        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(record.to_document(), f, indent=2)
        os.replace(tmp_file, record_file)

    async def get_record(self, user_id: str) -> Optional[UsageRecord]:
        """Get the usage record for a user."""
        record_file = self._get_record_file(user_id)

        async with self._lock:
            try:
                return await asyncio.to_thread(self._read_file, record_file)
            except (OSError, ValueError, ValidationError) as e:
                logger.error(f"Failed to load usage record for user {user_id}: {e}")
                raise StorageError(f"Cannot read usage record for {user_id}: {e}") from e

    async def save_record(self, record: UsageRecord) -> None:
        """Insert or overwrite the usage record."""
        async with self._lock:
            try:
                await asyncio.to_thread(self._write_file, record)
            except OSError as e:
                logger.error(f"Failed to save usage record for user {record.user_id}: {e}")
                raise StorageError(f"Cannot write usage record for {record.user_id}: {e}") from e

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on persistence backend."""
        try:
            storage_accessible = self.storage_dir.exists() and self.storage_dir.is_dir()
            total_users = len(list(self.storage_dir.glob("*.json"))) if storage_accessible else 0

            return {
                "healthy": storage_accessible,
                "storage_dir": str(self.storage_dir),
                "storage_accessible": storage_accessible,
                "total_users": total_users,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        except OSError as e:
            logger.error(f"Health check failed: {e}")
            return {
                "healthy": False,
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
