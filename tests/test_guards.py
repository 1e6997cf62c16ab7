"""Tests for migrator.database.guards - catalog existence checks."""

import pytest

from migrator.database.guards import (
    ObjectKind,
    column_exists,
    constraint_exists,
    exists,
    index_exists,
    split_qualified_name,
    table_exists,
    validate_identifier,
)
from migrator.exceptions import InvalidIdentifier


@pytest.fixture
def schema(make_table):
    make_table("CREATE TABLE users (id VARCHAR(255) PRIMARY KEY, email VARCHAR(255))")
    make_table(
        "CREATE TABLE shipments ("
        " id VARCHAR(255) PRIMARY KEY,"
        " supplier VARCHAR(255) NOT NULL,"
        " inspected_by VARCHAR(255),"
        " CONSTRAINT fk_shipments_inspected_by FOREIGN KEY (inspected_by) REFERENCES users(id),"
        " CONSTRAINT uq_shipments_supplier UNIQUE (supplier))"
    )
    make_table("CREATE INDEX idx_shipments_supplier ON shipments (supplier)")


# ── identifiers ──────────────────────────────────────────────────────


class TestIdentifiers:
    @pytest.mark.parametrize("name", ["users", "_private", "Table1", "idx_shipments_order_ref"])
    def test_valid(self, name):
        assert validate_identifier(name) == name

    @pytest.mark.parametrize("name", ["", "1abc", "users;", "drop table", "a-b", 'x"y', "users.id"])
    def test_invalid(self, name):
        with pytest.raises(InvalidIdentifier):
            validate_identifier(name)

    def test_invalid_is_value_error(self):
        with pytest.raises(ValueError):
            validate_identifier("bad name")

    def test_split_table(self):
        assert split_qualified_name(ObjectKind.TABLE, "shipments") == (None, "shipments", None)
        assert split_qualified_name(ObjectKind.TABLE, "public.shipments") == ("public", "shipments", None)

    def test_split_object(self):
        assert split_qualified_name(ObjectKind.COLUMN, "users.email") == (None, "users", "email")
        assert split_qualified_name(ObjectKind.INDEX, "public.users.idx") == ("public", "users", "idx")

    def test_split_wrong_arity(self):
        with pytest.raises(InvalidIdentifier):
            split_qualified_name(ObjectKind.COLUMN, "users")
        with pytest.raises(InvalidIdentifier):
            split_qualified_name(ObjectKind.TABLE, "a.b.c")

    def test_split_rejects_injection(self):
        with pytest.raises(InvalidIdentifier):
            split_qualified_name(ObjectKind.TABLE, "users; DROP TABLE users")


# ── exists ───────────────────────────────────────────────────────────


@pytest.mark.usefixtures("schema")
class TestExists:
    def test_table(self, engine):
        with engine.connect() as conn:
            assert exists(conn, ObjectKind.TABLE, "shipments")
            assert not exists(conn, ObjectKind.TABLE, "archives")
            assert table_exists(conn, "users")

    def test_column(self, engine):
        with engine.connect() as conn:
            assert exists(conn, ObjectKind.COLUMN, "users.email")
            assert not exists(conn, ObjectKind.COLUMN, "users.reset_token")
            assert not column_exists(conn, "archives", "id")

    def test_index(self, engine):
        with engine.connect() as conn:
            assert exists(conn, ObjectKind.INDEX, "shipments.idx_shipments_supplier")
            assert not exists(conn, ObjectKind.INDEX, "shipments.idx_missing")
            assert not index_exists(conn, "archives", "idx_archives_file_name")

    def test_constraint(self, engine):
        with engine.connect() as conn:
            assert exists(conn, ObjectKind.CONSTRAINT, "shipments.fk_shipments_inspected_by")
            assert exists(conn, ObjectKind.CONSTRAINT, "shipments.uq_shipments_supplier")
            assert not exists(conn, ObjectKind.CONSTRAINT, "shipments.fk_shipments_received_by")
            assert not constraint_exists(conn, "archives", "fk_archives_created_by")

    def test_kind_as_string(self, engine):
        with engine.connect() as conn:
            assert exists(conn, "column", "shipments.supplier")

    def test_sees_uncommitted_ddl_on_same_connection(self, engine):
        with engine.connect() as conn:
            trans = conn.begin()
            conn.exec_driver_sql("ALTER TABLE users ADD COLUMN reset_token VARCHAR(255)")
            assert exists(conn, ObjectKind.COLUMN, "users.reset_token")
            trans.rollback()
        with engine.connect() as conn:
            assert not exists(conn, ObjectKind.COLUMN, "users.reset_token")
