"""Factory for creating usage storage instances."""

from pathlib import Path

from .interface import UsageStorageInterface
from .json_storage import JsonUsageStorage
from .db_storage import DatabaseUsageStorage
from ..config.settings import Settings


class StorageFactory:
    """Factory for creating usage storage instances."""

    @staticmethod
    def create_storage(settings: Settings) -> UsageStorageInterface:
        """
        Create usage storage based on settings.

        Args:
            settings: Application settings

        Returns:
            UsageStorageInterface instance
        """
        if settings.persistence_type == "json":
            return JsonUsageStorage(storage_dir=Path(settings.json_storage_dir))

        elif settings.persistence_type == "database":
            return DatabaseUsageStorage(database_url=settings.database_url)

        else:
            raise ValueError(f"Unknown persistence type: {settings.persistence_type}")
