import json

import pytest

from shipdesk.errors import StorageError
from shipdesk.session.models import PersistedSessionRecord
from shipdesk.session.repository import AUTH_STORAGE_KEY, SESSION_ID_KEY, PersistedSessionRepository
from shipdesk.storage.kv import FileKeyValueStore, MemoryKeyValueStore

from conftest import FailingStore, SlowStore, make_session


async def test_save_then_load_round_trips_session(repository, storage):
    session = make_session("u1", selected_entity={"entity": {"_id": "e1"}}, type_ref="cust-1").stamped()

    assert await repository.save(session) is True

    record = await repository.load()
    assert record is not None
    assert record.session == session
    assert storage.snapshot()[SESSION_ID_KEY] == session.session_id
    assert await repository.validate(record.session_id) is True


async def test_save_stamps_session_without_id(repository):
    assert await repository.save(make_session("u1")) is True

    record = await repository.load()
    assert record is not None
    assert record.session_id
    assert await repository.validate(record.session_id) is True


async def test_record_is_written_with_camel_case_keys(repository, storage):
    session = make_session("u1").stamped()
    await repository.save(session)

    data = json.loads(storage.snapshot()[AUTH_STORAGE_KEY])
    assert data["userId"] == "u1"
    assert data["sessionId"] == session.session_id
    assert data["token"] == "tok-u1"


async def test_load_returns_none_when_missing(repository):
    assert await repository.load() is None


async def test_load_returns_none_for_malformed_data():
    for raw in ("{not json", "[]", json.dumps({"userId": "u1"}), json.dumps({"userId": "u1", "token": "t"})):
        repo = PersistedSessionRepository(MemoryKeyValueStore({AUTH_STORAGE_KEY: raw}), timeout_s=1.0)
        assert await repo.load() is None, raw


async def test_validate_detects_mutated_marker(repository, storage):
    session = make_session("u1").stamped()
    await repository.save(session)
    await storage.set_item(SESSION_ID_KEY, "tampered")

    assert await repository.validate(session.session_id) is False


async def test_validate_rejects_empty_candidate(repository):
    assert await repository.validate(None) is False
    assert await repository.validate("") is False


async def test_clear_removes_both_keys_and_is_idempotent(repository, storage):
    await repository.save(make_session("u1").stamped())

    assert await repository.clear() is True
    assert storage.snapshot() == {}
    assert await repository.clear() is True
    assert await repository.load() is None


async def test_storage_failures_degrade_to_no_session():
    repo = PersistedSessionRepository(FailingStore(), timeout_s=1.0)

    assert await repo.save(make_session("u1").stamped()) is False
    assert await repo.load() is None
    assert await repo.clear() is False
    assert await repo.validate("123") is False


async def test_slow_storage_times_out_as_absent():
    store = SlowStore()
    repo = PersistedSessionRepository(store, timeout_s=0.05)
    await store.set_item(AUTH_STORAGE_KEY, PersistedSessionRecord(make_session("u1").stamped()).to_json())

    assert await repo.load() is None


async def test_file_store_persists_across_instances(tmp_path):
    session = make_session("u1").stamped()
    await PersistedSessionRepository(FileKeyValueStore(tmp_path), timeout_s=1.0).save(session)

    repo = PersistedSessionRepository(FileKeyValueStore(tmp_path), timeout_s=1.0)
    record = await repo.load()
    assert record is not None and record.session == session
    assert await repo.validate(session.session_id) is True

    await repo.clear()
    assert list(tmp_path.glob("*.value")) == []


async def test_undecodable_record_file_loads_as_absent(tmp_path):
    storage = FileKeyValueStore(tmp_path)
    (tmp_path / "auth_data.value").write_bytes(b"\xff\xfe{bad")
    repo = PersistedSessionRepository(storage, timeout_s=1.0)

    assert await repo.load() is None


async def test_undecodable_marker_file_fails_validation(tmp_path):
    session = make_session("u1").stamped()
    repo = PersistedSessionRepository(FileKeyValueStore(tmp_path), timeout_s=1.0)
    await repo.save(session)
    (tmp_path / "session_id.value").write_bytes(b"\xff\xfe\x00")

    assert await repo.validate(session.session_id) is False
    assert await repo.clear() is True


class BrokenBackend(MemoryKeyValueStore):
    async def get_item(self, key):
        raise RuntimeError("driver crashed")

    async def set_item(self, key, value):
        raise ValueError("bad value")


async def test_unexpected_backend_errors_are_absorbed():
    repo = PersistedSessionRepository(BrokenBackend(), timeout_s=1.0)

    assert await repo.load() is None
    assert await repo.validate("123") is False
    assert await repo.save(make_session("u1").stamped()) is False


async def test_file_store_reports_undecodable_value_as_storage_error(tmp_path):
    storage = FileKeyValueStore(tmp_path)
    (tmp_path / "auth_data.value").write_bytes(b"\xff\xfe{bad")

    with pytest.raises(StorageError):
        await storage.get_item(AUTH_STORAGE_KEY)
