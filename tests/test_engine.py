"""Tests for migrator.migrations.engine - the run state machine."""

from datetime import datetime

import pytest
from sqlalchemy import inspect

from migrator.exceptions import CyclicDependency, RollbackError, UnknownDependency
from migrator.migrations import HistoryStore, MigrationDefinition, MigrationEngine
from migrator.models import MigrationStatus


class Recorder:
    """Collects invocation order across operations."""

    def __init__(self):
        self.calls = []

    def op(self, name, fail=None):
        def run(ctx):
            self.calls.append(name)
            if fail is not None:
                raise fail

        return run


@pytest.fixture
def recorder():
    return Recorder()


def defn(name, operation, *deps, rollback=None, version="1"):
    return MigrationDefinition(
        name=name,
        version=version,
        description=f"{name} migration",
        operation=operation,
        depends_on=deps,
        rollback=rollback,
    )


def status_of(engine, name, version="1"):
    record = HistoryStore(engine).get(name, version)
    return record.status_enum if record else None


# ── run_all ──────────────────────────────────────────────────────────


class TestRunAll:
    def test_runs_in_dependency_order(self, engine, recorder, clock):
        definitions = [
            defn("b", recorder.op("b"), "a"),
            defn("a", recorder.op("a")),
        ]
        report = MigrationEngine(engine, definitions, clock=clock).run_all()

        assert recorder.calls == ["a", "b"]
        assert [e.name for e in report.completed] == ["a", "b"]
        assert report.ok
        assert status_of(engine, "a") == MigrationStatus.COMPLETED
        assert status_of(engine, "b") == MigrationStatus.COMPLETED

    def test_second_run_invokes_nothing(self, engine, recorder, clock):
        definitions = [defn("a", recorder.op("a")), defn("b", recorder.op("b"), "a")]
        MigrationEngine(engine, definitions, clock=clock).run_all()
        recorder.calls.clear()

        report = MigrationEngine(engine, definitions, clock=clock).run_all()

        assert recorder.calls == []
        assert report.invoked == []
        assert all(e.already_applied for e in report.entries)
        assert report.counts[MigrationStatus.COMPLETED] == 2

    def test_failure_skips_dependents_and_continues(self, engine, recorder, clock):
        definitions = [
            defn("a", recorder.op("a")),
            defn("b", recorder.op("b", fail=RuntimeError("column already exists")), "a"),
            defn("c", recorder.op("c"), "b"),
            defn("d", recorder.op("d"), "a"),
        ]
        report = MigrationEngine(engine, definitions, clock=clock).run_all()

        assert recorder.calls == ["a", "b", "d"]
        assert report.get("b").status == MigrationStatus.FAILED
        assert report.get("b").error == "column already exists"
        assert report.get("c").status == MigrationStatus.SKIPPED
        assert report.get("c").blocked_by == ("b",)
        assert report.get("d").status == MigrationStatus.COMPLETED
        assert not report.ok

        history = HistoryStore(engine)
        failed = history.get("b", "1")
        assert failed.error_message == "column already exists"
        assert failed.completed_at is not None
        skipped = history.get("c", "1")
        assert skipped.status_enum == MigrationStatus.SKIPPED
        assert skipped.error_message is None
        assert skipped.duration_ms == 0

    def test_skip_cascades(self, engine, recorder, clock):
        definitions = [
            defn("a", recorder.op("a", fail=ValueError("bad"))),
            defn("b", recorder.op("b"), "a"),
            defn("c", recorder.op("c"), "b"),
        ]
        report = MigrationEngine(engine, definitions, clock=clock).run_all()

        assert recorder.calls == ["a"]
        assert [e.name for e in report.skipped] == ["b", "c"]
        assert report.get("c").blocked_by == ("b",)

    def test_failed_migration_retried_next_run(self, engine, recorder, clock):
        attempts = {"n": 0}

        def flaky(ctx):
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise RuntimeError("lock timeout")

        definitions = [defn("a", flaky), defn("b", recorder.op("b"), "a")]
        first = MigrationEngine(engine, definitions, clock=clock).run_all()
        assert first.get("a").status == MigrationStatus.FAILED
        assert first.get("b").status == MigrationStatus.SKIPPED

        second = MigrationEngine(engine, definitions, clock=clock).run_all()
        assert second.ok
        assert second.invoked == ["a", "b"]
        record = HistoryStore(engine).get("a", "1")
        assert record.status_enum == MigrationStatus.COMPLETED
        assert record.error_message is None
        assert len(HistoryStore(engine).get_history()) == 2

    def test_completed_dependency_from_previous_run_unblocks(self, engine, recorder, clock):
        MigrationEngine(engine, [defn("a", recorder.op("a"))], clock=clock).run_all()
        recorder.calls.clear()

        definitions = [defn("a", recorder.op("a")), defn("b", recorder.op("b"), "a")]
        report = MigrationEngine(engine, definitions, clock=clock).run_all()

        assert recorder.calls == ["b"]
        assert report.get("a").already_applied
        assert report.invoked == ["b"]

    def test_error_message_falls_back_to_type_name(self, engine, clock):
        def silent(ctx):
            raise KeyError

        report = MigrationEngine(engine, [defn("a", silent)], clock=clock).run_all()
        assert report.get("a").error == "KeyError"

    def test_records_running_before_invoking(self, engine, clock):
        seen = {}

        def observe(ctx):
            seen["status"] = status_of(ctx.engine, "a")
            seen["name"] = ctx.name

        MigrationEngine(engine, [defn("a", observe)], clock=clock).run_all()
        assert seen == {"status": MigrationStatus.RUNNING, "name": "a"}

    def test_interrupt_leaves_record_running(self, engine, recorder, clock):
        def interrupted(ctx):
            raise KeyboardInterrupt

        definitions = [defn("a", interrupted), defn("b", recorder.op("b"))]
        with pytest.raises(KeyboardInterrupt):
            MigrationEngine(engine, definitions, clock=clock).run_all()

        assert status_of(engine, "a") == MigrationStatus.RUNNING
        assert status_of(engine, "b") is None
        assert recorder.calls == []

    def test_running_record_is_reinvoked(self, engine, recorder, clock):
        HistoryStore(engine).ensure_schema()
        HistoryStore(engine).mark_running("a", "1", clock())

        report = MigrationEngine(engine, [defn("a", recorder.op("a"))], clock=clock).run_all()
        assert recorder.calls == ["a"]
        assert report.get("a").status == MigrationStatus.COMPLETED

    def test_timestamps_come_from_clock(self, engine, clock):
        MigrationEngine(engine, [defn("a", lambda ctx: None)], clock=clock).run_all()
        record = HistoryStore(engine).get("a", "1")
        assert record.executed_at.replace(tzinfo=None) == datetime(2026, 1, 1, 0, 0, 0)
        assert record.completed_at.replace(tzinfo=None) == datetime(2026, 1, 1, 0, 0, 1)


# ── registry errors ──────────────────────────────────────────────────


class TestRegistryErrors:
    def test_cycle_stops_before_side_effects(self, engine, recorder):
        definitions = [defn("a", recorder.op("a"), "b"), defn("b", recorder.op("b"), "a")]
        with pytest.raises(CyclicDependency):
            MigrationEngine(engine, definitions).run_all()
        assert recorder.calls == []
        assert not inspect(engine).has_table("migration_history")

    def test_unknown_dependency_stops_before_side_effects(self, engine, recorder):
        with pytest.raises(UnknownDependency):
            MigrationEngine(engine, [defn("a", recorder.op("a"), "ghost")])
        assert not inspect(engine).has_table("migration_history")


# ── queries ──────────────────────────────────────────────────────────


class TestQueries:
    def test_pending(self, engine, recorder, clock):
        definitions = [
            defn("a", recorder.op("a")),
            defn("b", recorder.op("b", fail=RuntimeError("x"))),
            defn("c", recorder.op("c")),
        ]
        migrator = MigrationEngine(engine, definitions, clock=clock)
        assert [d.name for d in migrator.pending()] == ["a", "b", "c"]

        migrator.run_all()
        assert [d.name for d in migrator.pending()] == ["b"]

    def test_history_and_reset(self, engine, clock):
        migrator = MigrationEngine(engine, [defn("a", lambda ctx: None), defn("b", lambda ctx: None)], clock=clock)
        migrator.run_all()
        assert [r.name for r in migrator.get_history()] == ["b", "a"]
        assert migrator.reset_history() == 2
        assert migrator.get_history() == []


# ── rollback ─────────────────────────────────────────────────────────


class TestRollback:
    def test_rollback_restores_pending(self, engine, recorder, clock):
        definitions = [defn("a", recorder.op("a"), rollback=recorder.op("undo-a"))]
        migrator = MigrationEngine(engine, definitions, clock=clock)
        migrator.run_all()

        record = migrator.rollback("a")

        assert recorder.calls == ["a", "undo-a"]
        assert record.status_enum == MigrationStatus.PENDING
        assert record.executed_at is None
        assert [d.name for d in migrator.pending()] == ["a"]

    def test_unknown_name(self, engine):
        with pytest.raises(RollbackError):
            MigrationEngine(engine, []).rollback("missing")

    def test_without_rollback_operation(self, engine, clock):
        migrator = MigrationEngine(engine, [defn("a", lambda ctx: None)], clock=clock)
        migrator.run_all()
        with pytest.raises(RollbackError):
            migrator.rollback("a")

    def test_not_completed(self, engine, recorder):
        migrator = MigrationEngine(engine, [defn("a", recorder.op("a"), rollback=recorder.op("undo-a"))])
        with pytest.raises(RollbackError):
            migrator.rollback("a")
        assert recorder.calls == []

    def test_refuses_while_dependents_completed(self, engine, recorder, clock):
        definitions = [
            defn("a", recorder.op("a"), rollback=recorder.op("undo-a")),
            defn("b", recorder.op("b"), "a", rollback=recorder.op("undo-b")),
        ]
        migrator = MigrationEngine(engine, definitions, clock=clock)
        migrator.run_all()

        with pytest.raises(RollbackError):
            migrator.rollback("a")

        migrator.rollback("b")
        migrator.rollback("a")
        assert recorder.calls == ["a", "b", "undo-b", "undo-a"]

    def test_failing_rollback_keeps_completed(self, engine, recorder, clock):
        definitions = [defn("a", recorder.op("a"), rollback=recorder.op("undo-a", fail=RuntimeError("locked")))]
        migrator = MigrationEngine(engine, definitions, clock=clock)
        migrator.run_all()

        with pytest.raises(RuntimeError):
            migrator.rollback("a")
        assert status_of(engine, "a") == MigrationStatus.COMPLETED
