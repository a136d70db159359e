"""Abstract interface for usage record persistence."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .models import UsageRecord


class StorageError(Exception):
    """Raised when the usage store cannot be read or written."""


class UsageStorageInterface(ABC):
    """Abstract interface for usage storage implementations.

    Holds at most one document per user, keyed by ``user_id``. Implementations
    must not cache records in process; every call goes to the backend.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the persistence backend."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Shutdown the persistence backend gracefully."""
        pass

    @abstractmethod
    async def get_record(self, user_id: str) -> Optional[UsageRecord]:
        """
        Get the usage record for a user.

        Args:
            user_id: User identifier

        Returns:
            UsageRecord if one is stored, None otherwise

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save_record(self, record: UsageRecord) -> None:
        """
        Insert or overwrite the usage record for ``record.user_id``.

        Args:
            record: UsageRecord to persist

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on persistence backend.

        Returns:
            Health check results with at least a ``healthy`` flag
        """
        pass
