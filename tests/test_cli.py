"""Tests for run_migration - command-line interface."""

import pytest
from sqlalchemy import create_engine

import run_migration
from migrator.config.settings import settings
from migrator.migrations import HistoryStore, MigrationDefinition, MigrationEngine
from migrator.models import MigrationStatus


def noop(ctx):
    pass


def fail(ctx):
    raise RuntimeError("boom")


def defn(name, operation=noop, *deps, rollback=None):
    return MigrationDefinition(
        name=name, version="1", description=name, operation=operation, depends_on=deps, rollback=rollback
    )


@pytest.fixture
def use_definitions(monkeypatch):
    """Point the CLI at a small in-test registry."""

    def _use(definitions):
        monkeypatch.setattr(run_migration, "build_engine", lambda engine: MigrationEngine(engine, definitions))

    return _use


# ── Parser tests ─────────────────────────────────────────────────────


class TestParser:
    def test_default_runs(self):
        args = run_migration.parse_args([])
        assert not (args.check or args.status or args.reset or args.rollback)

    def test_rollback_takes_name(self):
        assert run_migration.parse_args(["--rollback", "add-archives-table"]).rollback == "add-archives-table"

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            run_migration.parse_args(["--check", "--reset"])


# ── main ─────────────────────────────────────────────────────────────


class TestMain:
    def test_run_success(self, engine, use_definitions):
        use_definitions([defn("a"), defn("b", noop, "a")])
        assert run_migration.main([], engine=engine) == 0
        assert HistoryStore(engine).get("b", "1").status_enum == MigrationStatus.COMPLETED

    def test_run_failure_exits_1(self, engine, use_definitions):
        use_definitions([defn("a", fail), defn("b")])
        assert run_migration.main([], engine=engine) == 1
        assert HistoryStore(engine).get("b", "1").status_enum == MigrationStatus.COMPLETED

    def test_check(self, engine, use_definitions):
        use_definitions([defn("a")])
        assert run_migration.main(["--check"], engine=engine) == 1
        run_migration.main([], engine=engine)
        assert run_migration.main(["--check"], engine=engine) == 0

    def test_status(self, engine, use_definitions):
        use_definitions([defn("a"), defn("b", fail), defn("c", noop, "b")])
        run_migration.main([], engine=engine)
        assert run_migration.main(["--status"], engine=engine) == 0

    def test_status_empty(self, engine, use_definitions):
        use_definitions([defn("a")])
        assert run_migration.main(["--status"], engine=engine) == 0

    def test_reset(self, engine, use_definitions):
        use_definitions([defn("a")])
        run_migration.main([], engine=engine)
        assert run_migration.main(["--reset"], engine=engine) == 0
        assert HistoryStore(engine).get_history() == []

    def test_rollback(self, engine, use_definitions):
        use_definitions([defn("a", rollback=noop)])
        run_migration.main([], engine=engine)
        assert run_migration.main(["--rollback", "a"], engine=engine) == 0
        assert HistoryStore(engine).get("a", "1").status_enum == MigrationStatus.PENDING

    def test_rollback_refused(self, engine, use_definitions):
        use_definitions([defn("a")])
        run_migration.main([], engine=engine)
        assert run_migration.main(["--rollback", "a"], engine=engine) == 1

    def test_rollback_operation_failure(self, engine, use_definitions):
        use_definitions([defn("a", rollback=fail)])
        run_migration.main([], engine=engine)
        assert run_migration.main(["--rollback", "a"], engine=engine) == 1

    def test_registry_error_exits_1(self, engine, use_definitions):
        use_definitions([defn("a", noop, "b"), defn("b", noop, "a")])
        assert run_migration.main([], engine=engine) == 1

    def test_unreachable_database_exits_1(self, tmp_path):
        broken = create_engine(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}")
        assert run_migration.main([], engine=broken) == 1

    def test_unconfigured_database_exits_0(self, monkeypatch):
        monkeypatch.setattr(settings, "database_dsn", "")
        monkeypatch.setattr(settings, "database_password", "")
        assert run_migration.main([]) == 0
