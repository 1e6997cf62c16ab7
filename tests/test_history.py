"""Tests for migrator.migrations.history - the migration_history table."""

from datetime import datetime, UTC

import pytest
from sqlalchemy import inspect

from migrator.migrations import HistoryStore
from migrator.models import MigrationStatus


@pytest.fixture
def store(engine):
    store = HistoryStore(engine)
    store.ensure_schema()
    return store


def at(minute):
    return datetime(2026, 3, 1, 12, minute, tzinfo=UTC)


class TestHistoryStore:
    def test_ensure_schema_is_idempotent(self, engine, store):
        store.ensure_schema()
        assert inspect(engine).has_table("migration_history")

    def test_single_row_per_identity(self, store):
        store.mark_running("a", "001", at(0))
        store.mark_failed("a", "001", "boom", at(1), 5)
        store.mark_running("a", "001", at(2))
        store.mark_completed("a", "001", at(3), 7)

        history = store.get_history()
        assert len(history) == 1
        record = history[0]
        assert record.status == MigrationStatus.COMPLETED.value
        assert record.error_message is None
        assert record.duration_ms == 7

    def test_version_is_part_of_identity(self, store):
        store.mark_completed("a", "001", at(0), 1)
        store.mark_completed("a", "002", at(1), 1)
        assert set(store.statuses()) == {("a", "001"), ("a", "002")}

    def test_running_clears_previous_outcome(self, store):
        store.mark_failed("a", "001", "boom", at(0), 3)
        record = store.mark_running("a", "001", at(1))
        assert record.status_enum == MigrationStatus.RUNNING
        assert record.error_message is None
        assert record.completed_at is None
        assert record.executed_at is not None

    def test_failed_keeps_message(self, store):
        store.mark_running("a", "001", at(0))
        store.mark_failed("a", "001", "relation does not exist", at(1), 12)
        record = store.get("a", "001")
        assert record.status_enum == MigrationStatus.FAILED
        assert record.error_message == "relation does not exist"
        assert record.duration_ms == 12
        assert record.completed_at is not None

    def test_skipped(self, store):
        record = store.mark_skipped("b", "002", at(0))
        assert record.status_enum == MigrationStatus.SKIPPED
        assert record.error_message is None
        assert record.duration_ms == 0
        assert record.executed_at == record.completed_at

    def test_pending_clears_timestamps(self, store):
        store.mark_completed("a", "001", at(0), 4)
        record = store.mark_pending("a", "001")
        assert record.status_enum == MigrationStatus.PENDING
        assert record.executed_at is None
        assert record.completed_at is None
        assert record.duration_ms == 0

    def test_statuses(self, store):
        store.mark_completed("a", "001", at(0), 1)
        store.mark_skipped("b", "002", at(1))
        assert store.statuses() == {
            ("a", "001"): MigrationStatus.COMPLETED,
            ("b", "002"): MigrationStatus.SKIPPED,
        }

    def test_get_missing(self, store):
        assert store.get("nope", "000") is None

    def test_history_most_recent_first(self, store):
        store.mark_running("old", "001", at(0))
        store.mark_completed("old", "001", at(1), 1)
        store.mark_running("new", "002", at(5))
        store.mark_pending("never", "003")
        store.mark_running("mid", "003", at(3))

        assert [r.name for r in store.get_history()] == ["new", "mid", "old", "never"]

    def test_reset(self, store):
        store.mark_completed("a", "001", at(0), 1)
        store.mark_completed("b", "002", at(1), 1)
        assert store.reset() == 2
        assert store.get_history() == []
