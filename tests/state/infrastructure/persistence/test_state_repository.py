"""
Tests for StateRepository — Property-Based Tests and Unit Tests

Feature: versioned-state-migration

Property 8: Save then load returns the latest snapshot
Property 9: Large snapshots are compressed transparently

Unit tests: 无记录返回 None、损坏记录抛 CorruptionError、完整性校验、清理旧快照
"""

import json
from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings, strategies as st
from peewee import SqliteDatabase

from src.state.infrastructure.persistence.exceptions import CorruptionError
from src.state.infrastructure.persistence.json_serializer import JsonSerializer
from src.state.infrastructure.persistence.state_repository import (
    COMPRESSION_PREFIX,
    StateRepository,
)
from src.state.infrastructure.persistence.state_snapshot_model import StateSnapshotModel
from src.state.infrastructure.persistence.storage_provider import StorageProvider
from src.state.infrastructure.persistence.versioned_state import VersionedState


# ---------------------------------------------------------------------------
# Test fixtures
# ---------------------------------------------------------------------------

def _make_db() -> SqliteDatabase:
    """Create an in-memory SQLite database."""
    db = SqliteDatabase(":memory:")
    db.connect()
    return db


def _make_repo(db: SqliteDatabase, key: str = "Sqrl-config", **kwargs) -> StateRepository:
    return StateRepository(database=db, key=key, **kwargs)


def _blob(version: int, **fields) -> str:
    return JsonSerializer().serialize(VersionedState(data=fields, version=version))


@pytest.fixture
def db():
    """Each test gets a fresh database."""
    database = _make_db()
    yield database
    database.close()


# ---------------------------------------------------------------------------
# Hypothesis strategies
# ---------------------------------------------------------------------------

_settings_data = st.fixed_dictionaries({
    "account": st.text(min_size=0, max_size=12),
    "walletMode": st.sampled_from(["hot", "cold", "watch"]),
    "idleTimeout": st.integers(min_value=0, max_value=3600),
})


# ===========================================================================
# Property-Based Tests
# ===========================================================================

class TestStateRepositoryProperties:

    @settings(max_examples=50, deadline=None)
    @given(snapshots=st.lists(_settings_data, min_size=1, max_size=5),
           version=st.integers(min_value=0, max_value=20))
    def test_property_8_latest_snapshot_wins(self, snapshots, version):
        database = _make_db()
        try:
            repo = _make_repo(database)
            for settings_data in snapshots:
                repo.save(_blob(version, settings=settings_data))

            loaded = JsonSerializer().deserialize(repo.load())

            assert loaded.version == version
            assert loaded["settings"] == snapshots[-1]
        finally:
            database.close()

    @settings(max_examples=30, deadline=None)
    @given(contacts=st.lists(st.text(min_size=5, max_size=20), min_size=50, max_size=120))
    def test_property_9_compression_is_transparent(self, contacts):
        database = _make_db()
        try:
            repo = _make_repo(database, compression_threshold=256)
            raw = _blob(8, settings={"contacts": contacts})
            repo.save(raw)
            assert repo.load() == raw
        finally:
            database.close()


# ===========================================================================
# Unit Tests
# ===========================================================================

class TestStateRepositoryUnit:

    def test_is_storage_provider(self, db):
        assert isinstance(_make_repo(db), StorageProvider)

    def test_load_without_records_returns_none(self, db):
        assert _make_repo(db).load() is None

    def test_keys_are_isolated(self, db):
        a = _make_repo(db, key="a")
        b = _make_repo(db, key="b")
        a.save(_blob(1, settings={"n": "a"}))
        assert b.load() is None
        assert json.loads(a.load())["settings"] == {"n": "a"}

    def test_schema_version_column_recorded(self, db):
        repo = _make_repo(db)
        repo.save(_blob(7, settings={}))
        repo.save("not json")
        versions = [r.schema_version for r in StateSnapshotModel.select().order_by(StateSnapshotModel.id)]
        assert versions == [7, None]

    def test_compresses_above_threshold(self, db):
        repo = _make_repo(db, compression_threshold=64)
        raw = _blob(8, settings={"recentContracts": ["eosio.token"] * 200})
        repo.save(raw)

        record = StateSnapshotModel.select().first()
        assert record.compressed == 1
        assert record.snapshot_json.startswith(COMPRESSION_PREFIX)
        assert repo.load() == raw

    def test_small_snapshot_not_compressed(self, db):
        repo = _make_repo(db)
        raw = _blob(8, settings={})
        repo.save(raw)
        record = StateSnapshotModel.select().first()
        assert record.compressed == 0
        assert record.snapshot_json == raw

    def test_corrupted_compressed_record_raises(self, db):
        repo = _make_repo(db)
        StateSnapshotModel.create(
            state_key="Sqrl-config",
            snapshot_json=COMPRESSION_PREFIX + "!!!not-base64!!!",
            compressed=1,
        )
        with pytest.raises(CorruptionError) as exc_info:
            repo.load()
        assert exc_info.value.key == "Sqrl-config"
        assert exc_info.value.original_error is not None

    def test_verify_integrity(self, db):
        repo = _make_repo(db)
        assert repo.verify_integrity() is False

        repo.save(_blob(3, settings={}))
        assert repo.verify_integrity() is True

        repo.save(json.dumps({"settings": {}}))
        assert repo.verify_integrity() is False

        repo.save("{broken")
        assert repo.verify_integrity() is False

    def test_cleanup_removes_old_snapshots_but_keeps_latest(self, db):
        repo = _make_repo(db)
        old = datetime.now() - timedelta(days=30)
        for i in range(3):
            StateSnapshotModel.create(
                state_key="Sqrl-config", snapshot_json=_blob(i), saved_at=old
            )
        repo.save(_blob(5))

        assert repo.cleanup(keep_days=7) == 3
        assert json.loads(repo.load())["_persist"]["version"] == 5

    def test_cleanup_never_deletes_only_snapshot(self, db):
        repo = _make_repo(db)
        StateSnapshotModel.create(
            state_key="Sqrl-config",
            snapshot_json=_blob(2),
            saved_at=datetime.now() - timedelta(days=365),
        )
        assert repo.cleanup(keep_days=1) == 0
        assert repo.load() is not None

    def test_cleanup_without_records(self, db):
        assert _make_repo(db).cleanup() == 0
