"""Shared fixtures for the test suite."""

from datetime import date
from typing import List, Optional

import pytest

from gembot.agent.errors import GenerationError
from gembot.agent.image_generator import GeneratedImage
from gembot.config.settings import Settings
from gembot.quota.json_storage import JsonUsageStorage
from gembot.quota.ledger import QuotaLedger
from gembot.quota.models import UsageRecord


def make_settings(**overrides) -> Settings:
    """Build settings without reading .env or requiring real credentials."""
    values = {
        "telegram_bot_token": "123456789:TEST-TOKEN",
        "google_api_key": "test-google-api-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FixedClock:
    """Controllable replacement for utc_today."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


class CountingStorage(JsonUsageStorage):
    """JSON storage that records every write."""

    def __init__(self, storage_dir):
        super().__init__(storage_dir)
        self.saved: List[UsageRecord] = []

    async def save_record(self, record: UsageRecord) -> None:
        self.saved.append(record.model_copy())
        await super().save_record(record)


class StubTextGenerator:
    """Stands in for GeminiAgent."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


class StubImageGenerator:
    """Stands in for GeminiImageGenerator."""

    def __init__(self, image: Optional[GeneratedImage] = None, error: Optional[GenerationError] = None):
        self.image = image
        self.error = error
        self.calls: List[tuple] = []

    async def generate_image(self, prompt: str, aspect_ratio: Optional[str] = None) -> GeneratedImage:
        self.calls.append((prompt, aspect_ratio))
        if self.error:
            raise self.error
        return self.image


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FixedClock(date(2024, 5, 1))


@pytest.fixture
async def storage(tmp_path):
    storage = CountingStorage(tmp_path / "usage")
    await storage.initialize()
    yield storage
    await storage.shutdown()


@pytest.fixture
def ledger(storage, clock):
    return QuotaLedger(storage, clock=clock)
