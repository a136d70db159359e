"""Daily usage quota accounting and storage."""

from .models import UsageRecord, Allowance
from .interface import UsageStorageInterface, StorageError
from .json_storage import JsonUsageStorage
from .db_storage import DatabaseUsageStorage
from .factory import StorageFactory
from .ledger import QuotaLedger, count_tokens, utc_today

__all__ = [
    'UsageRecord',
    'Allowance',
    'UsageStorageInterface',
    'StorageError',
    'JsonUsageStorage',
    'DatabaseUsageStorage',
    'StorageFactory',
    'QuotaLedger',
    'count_tokens',
    'utc_today'
]
