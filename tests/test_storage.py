"""Tests for the usage storage backends."""

import json
from datetime import date
from types import SimpleNamespace

import pytest

from gembot.quota.db_storage import DatabaseUsageStorage
from gembot.quota.factory import StorageFactory
from gembot.quota.interface import StorageError
from gembot.quota.json_storage import JsonUsageStorage
from gembot.quota.models import UsageRecord

from conftest import make_settings


@pytest.fixture
async def json_storage(tmp_path):
    storage = JsonUsageStorage(storage_dir=tmp_path / "usage")
    await storage.initialize()
    yield storage
    await storage.shutdown()


@pytest.fixture
async def db_storage(tmp_path):
    storage = DatabaseUsageStorage(database_url=f"sqlite:///{tmp_path / 'db' / 'usage.db'}")
    await storage.initialize()
    yield storage
    await storage.shutdown()


class TestJsonUsageStorage:

    async def test_missing_record_returns_none(self, json_storage):
        assert await json_storage.get_record("nobody") is None

    async def test_document_layout(self, json_storage, tmp_path):
        await json_storage.save_record(UsageRecord(user_id="12345", day=date(2024, 5, 1), used=17))

        with open(tmp_path / "usage" / "12345.json", encoding="utf-8") as f:
            document = json.load(f)

        assert document == {"userId": "12345", "day": "2024-05-01", "used": 17}

    async def test_one_document_per_user_is_overwritten(self, json_storage, tmp_path):
        await json_storage.save_record(UsageRecord(user_id="7", day=date(2024, 5, 1), used=5))
        await json_storage.save_record(UsageRecord(user_id="7", day=date(2024, 5, 2), used=0))

        assert await json_storage.get_record("7") == UsageRecord(user_id="7", day=date(2024, 5, 2), used=0)
        assert sorted(p.name for p in (tmp_path / "usage").iterdir()) == ["7.json"]

    async def test_unsafe_user_ids_stay_inside_storage_dir(self, json_storage, tmp_path):
        await json_storage.save_record(UsageRecord(user_id="../escape", day=date(2024, 5, 1), used=1))

        assert not (tmp_path / "escape.json").exists()
        assert (await json_storage.get_record("../escape")).used == 1

    async def test_similar_user_ids_get_separate_documents(self, json_storage):
        await json_storage.save_record(UsageRecord(user_id="a/b", day=date(2024, 5, 1), used=1))
        await json_storage.save_record(UsageRecord(user_id="a_b", day=date(2024, 5, 1), used=2))

        assert (await json_storage.get_record("a/b")).used == 1
        assert (await json_storage.get_record("a_b")).used == 2

    async def test_user_id_is_stored_verbatim(self, json_storage):
        await json_storage.save_record(UsageRecord(user_id=" 42 ", day=date(2024, 5, 1), used=4))

        assert (await json_storage.get_record(" 42 ")).user_id == " 42 "
        assert await json_storage.get_record("42") is None

    async def test_reads_are_not_cached(self, json_storage, tmp_path):
        await json_storage.save_record(UsageRecord(user_id="7", day=date(2024, 5, 1), used=5))

        (tmp_path / "usage" / "7.json").write_text(
            json.dumps({"userId": "7", "day": "2024-05-01", "used": 9}), encoding="utf-8"
        )

        assert (await json_storage.get_record("7")).used == 9

    async def test_corrupt_document_raises_storage_error(self, json_storage, tmp_path):
        (tmp_path / "usage" / "7.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await json_storage.get_record("7")

    async def test_invalid_document_raises_storage_error(self, json_storage, tmp_path):
        (tmp_path / "usage" / "7.json").write_text(
            json.dumps({"userId": "7", "day": "2024-05-01", "used": -3}), encoding="utf-8"
        )

        with pytest.raises(StorageError):
            await json_storage.get_record("7")

    async def test_health_check(self, json_storage):
        await json_storage.save_record(UsageRecord(user_id="1", day=date(2024, 5, 1), used=0))

        health = await json_storage.health_check()

        assert health["healthy"] is True
        assert health["total_users"] == 1


class TestDatabaseUsageStorage:

    async def test_missing_record_returns_none(self, db_storage):
        assert await db_storage.get_record("nobody") is None

    async def test_save_and_overwrite(self, db_storage):
        await db_storage.save_record(UsageRecord(user_id="42", day=date(2024, 5, 1), used=120))
        assert await db_storage.get_record("42") == UsageRecord(user_id="42", day=date(2024, 5, 1), used=120)

        await db_storage.save_record(UsageRecord(user_id="42", day=date(2024, 5, 2), used=3))
        assert await db_storage.get_record("42") == UsageRecord(user_id="42", day=date(2024, 5, 2), used=3)

    async def test_save_overwrites_row_inserted_concurrently(self, db_storage, monkeypatch):
        await db_storage.save_record(UsageRecord(user_id="42", day=date(2024, 5, 1), used=5))

        open_session = db_storage.db_manager.get_session

        def session_missing_first_lookup():
            session = open_session()
            lookup = session.get
            calls = []

            def get(entity, ident):
                calls.append(ident)
                # Row looks absent, as if another writer inserted it after this read
                return None if len(calls) == 1 else lookup(entity, ident)

            session.get = get
            return session

        monkeypatch.setattr(db_storage.db_manager, "get_session", session_missing_first_lookup)

        await db_storage.save_record(UsageRecord(user_id="42", day=date(2024, 5, 1), used=9))

        monkeypatch.undo()
        assert (await db_storage.get_record("42")).used == 9

    async def test_health_check_counts_users(self, db_storage):
        await db_storage.save_record(UsageRecord(user_id="a", day=date(2024, 5, 1), used=1))
        await db_storage.save_record(UsageRecord(user_id="b", day=date(2024, 5, 1), used=2))

        health = await db_storage.health_check()

        assert health["healthy"] is True
        assert health["connection_test"] is True
        assert health["total_users"] == 2

    async def test_unusable_database_url_fails_initialize(self):
        storage = DatabaseUsageStorage(database_url="notadialect://nowhere")

        with pytest.raises(StorageError):
            await storage.initialize()


class TestStorageFactory:

    def test_json_backend(self, tmp_path):
        settings = make_settings(persistence_type="json", json_storage_dir=str(tmp_path))

        storage = StorageFactory.create_storage(settings)

        assert isinstance(storage, JsonUsageStorage)
        assert storage.storage_dir == tmp_path

    def test_database_backend(self, tmp_path):
        settings = make_settings(persistence_type="DATABASE", database_url=f"sqlite:///{tmp_path}/u.db")

        storage = StorageFactory.create_storage(settings)

        assert isinstance(storage, DatabaseUsageStorage)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            StorageFactory.create_storage(SimpleNamespace(persistence_type="redis"))
