"""Per-user daily token quota accounting.

The ledger gates requests with :meth:`QuotaLedger.check_allowance` before the
provider is called and records what was actually consumed with
:meth:`QuotaLedger.charge` afterwards. The two steps are not atomic: concurrent
requests from one user can both pass the check, and the saturating add in
``charge`` keeps the stored counter at or below the limit.

Consumption is measured in approximate tokens, the number of
whitespace-separated words in the generated reply.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from .interface import UsageStorageInterface
from .models import Allowance, UsageRecord


logger = logging.getLogger(__name__)


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def count_tokens(text: Optional[str]) -> int:
    """Count whitespace-delimited words, the proxy for generated tokens."""
    if not text:
        return 0
    return len(text.split())


class QuotaLedger:
    """Gates and meters per-user daily consumption."""

    def __init__(self, storage: UsageStorageInterface, clock: Callable[[], date] = utc_today):
        """Initialize the ledger.

        Args:
            storage: Backend holding one usage record per user
            clock: Returns today's UTC date; replaceable in tests
        """
        self.storage = storage
        self.clock = clock

    async def _load_current(self, user_id: str) -> UsageRecord:
        """Fetch the user's record, creating or rolling it over to today."""
        today = self.clock()
        record = await self.storage.get_record(user_id)

        if record is None:
            record = UsageRecord(user_id=user_id, day=today, used=0)
            await self.storage.save_record(record)
            logger.info(f"Created usage record for user {user_id} on {today}")
        elif record.day != today:
            logger.info(f"Resetting usage for user {user_id}: {record.day} -> {today} (was {record.used})")
            record.day = today
            record.used = 0
            await self.storage.save_record(record)

        return record

    async def check_allowance(self, user_id: str, limit: int) -> Allowance:
        """Report whether the user may make another request today.

        Nothing is deducted. Storage failures propagate.
        """
        _validate_limit(limit)
        record = await self._load_current(user_id)
        return Allowance(
            allowed=record.used < limit,
            used=record.used,
            limit=limit,
            day=record.day,
            resets_at=self.next_reset()
        )

    async def charge(self, user_id: str, amount: int, limit: int) -> int:
        """Record consumption and return the new daily total.

        The total saturates at ``limit``; an overshooting charge is clamped,
        not rejected, since the provider call has already happened.
        """
        _validate_limit(limit)
        if amount < 0:
            raise ValueError(f"Charge amount cannot be negative: {amount}")

        record = await self._load_current(user_id)
        record.used = min(limit, record.used + amount)
        await self.storage.save_record(record)

        logger.debug(f"Charged user {user_id} {amount} tokens, now {record.used}/{limit}")
        return record.used

    async def charge_text(self, user_id: str, text: Optional[str], limit: int) -> int:
        """Charge the word count of a generated reply."""
        return await self.charge(user_id, count_tokens(text), limit)

    def next_reset(self) -> datetime:
        """Next UTC midnight, when every counter starts over."""
        tomorrow = self.clock() + timedelta(days=1)
        return datetime.combine(tomorrow, time.min, tzinfo=timezone.utc)


def _validate_limit(limit: int) -> None:
    if limit < 0:
        raise ValueError(f"Limit cannot be negative: {limit}")
