"""
结构变更操作

每个操作在执行前都会先检查目标状态是否已经存在（见 guards.py），已存在则直接跳过。
表名、列名等标识符统一校验并由方言负责加引号，不直接拼接外部输入。

所有操作都同时支持两种用法：
- ``apply(conn)``：在调用方提供的连接上执行（用于组合进 Transactional）
- ``execute(ctx)``：作为迁移操作独立执行，自带一个事务
"""
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger
from sqlalchemy import MetaData, Table, text
from sqlalchemy.engine import Connection
from sqlalchemy.types import TypeEngine

from migrator.database.guards import (
    column_exists,
    constraint_exists,
    index_exists,
    table_exists,
    validate_identifier,
)
from migrator.exceptions import OperationFailure, TransactionAborted
from migrator.migrations.definition import MigrationContext

ON_DELETE_ACTIONS = ("CASCADE", "SET NULL", "SET DEFAULT", "RESTRICT", "NO ACTION")


def _quote(conn: Connection, identifier: str) -> str:
    return conn.dialect.identifier_preparer.quote(validate_identifier(identifier))


def split_sql_script(script: str) -> List[str]:
    """把 SQL 脚本拆分为单条语句（去掉 ``--`` 注释行）"""
    lines = [line for line in script.splitlines() if not line.strip().startswith("--")]
    statements = [stmt.strip() for stmt in "\n".join(lines).split(";")]
    return [stmt for stmt in statements if stmt]


class SchemaOperation:
    """结构变更操作基类"""

    def apply(self, conn: Connection) -> bool:
        """在给定连接上执行，返回是否产生了变更"""
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__

    def execute(self, ctx: MigrationContext) -> None:
        with ctx.transaction() as conn:
            changed = self.apply(conn)
        if changed:
            logger.info(f"✅ {self.describe()}")
        else:
            logger.info(f"⏭️  {self.describe()} 已是目标状态，跳过")

    def __repr__(self) -> str:
        return f"<{self.describe()}>"


class CreateTableIfAbsent(SchemaOperation):
    """
    创建表（已存在则跳过）

    columns / constraints 使用 SQLAlchemy 的 Column / Constraint 对象声明；
    外键引用的表会在创建前从数据库反射，因此不需要在同一个 MetaData 中声明。
    """

    def __init__(self, name: str, columns: Sequence[Any], constraints: Sequence[Any] = ()):
        self.name = validate_identifier(name)
        self._table = Table(name, MetaData(), *columns, *constraints)

    def _referenced_tables(self) -> List[str]:
        referenced = []
        for fk in self._table.foreign_keys:
            ref_table = fk.target_fullname.split(".")[0]
            if ref_table != self.name and ref_table not in referenced:
                referenced.append(ref_table)
        return referenced

    def apply(self, conn: Connection) -> bool:
        if table_exists(conn, self.name):
            return False

        metadata = MetaData()
        for ref_table in self._referenced_tables():
            Table(ref_table, metadata, autoload_with=conn)
        table = self._table.to_metadata(metadata)
        table.create(conn, checkfirst=True)
        return True

    def describe(self) -> str:
        return f"创建表 {self.name}"


class AddColumnIfAbsent(SchemaOperation):
    """添加字段（字段已存在则跳过，表不存在则报错）"""

    def __init__(
        self,
        table: str,
        column: str,
        type_: Union[TypeEngine, type],
        nullable: bool = True,
        server_default: Optional[str] = None,
    ):
        self.table = validate_identifier(table)
        self.column = validate_identifier(column)
        self.type_ = type_() if isinstance(type_, type) else type_
        self.nullable = nullable
        self.server_default = server_default

    def statement(self, conn: Connection) -> str:
        sql = (
            f"ALTER TABLE {_quote(conn, self.table)} "
            f"ADD COLUMN {_quote(conn, self.column)} {self.type_.compile(dialect=conn.dialect)}"
        )
        if self.server_default is not None:
            sql += f" DEFAULT {self.server_default}"
        if not self.nullable:
            sql += " NOT NULL"
        return sql

    def apply(self, conn: Connection) -> bool:
        if not table_exists(conn, self.table):
            raise OperationFailure(f"表 {self.table} 不存在，无法添加字段 {self.column}")
        if column_exists(conn, self.table, self.column):
            return False
        conn.exec_driver_sql(self.statement(conn))
        return True

    def describe(self) -> str:
        return f"添加字段 {self.table}.{self.column}"


class AddForeignKeyIfAbsent(SchemaOperation):
    """添加外键约束（约束已存在或源字段不存在时跳过）"""

    def __init__(
        self,
        table: str,
        column: str,
        ref_table: str,
        ref_column: str,
        constraint_name: str,
        on_delete: str = "SET NULL",
    ):
        if on_delete.upper() not in ON_DELETE_ACTIONS:
            raise ValueError(f"不支持的 ON DELETE 行为: {on_delete}")
        self.table = validate_identifier(table)
        self.column = validate_identifier(column)
        self.ref_table = validate_identifier(ref_table)
        self.ref_column = validate_identifier(ref_column)
        self.constraint_name = validate_identifier(constraint_name)
        self.on_delete = on_delete.upper()

    def statement(self, conn: Connection) -> str:
        return (
            f"ALTER TABLE {_quote(conn, self.table)} "
            f"ADD CONSTRAINT {_quote(conn, self.constraint_name)} "
            f"FOREIGN KEY ({_quote(conn, self.column)}) "
            f"REFERENCES {_quote(conn, self.ref_table)}({_quote(conn, self.ref_column)}) "
            f"ON DELETE {self.on_delete}"
        )

    def apply(self, conn: Connection) -> bool:
        if constraint_exists(conn, self.table, self.constraint_name):
            return False
        if not column_exists(conn, self.table, self.column):
            logger.warning(f"{self.table}.{self.column} 字段不存在，跳过外键 {self.constraint_name}")
            return False
        conn.exec_driver_sql(self.statement(conn))
        return True

    def describe(self) -> str:
        return f"添加外键 {self.table}.{self.constraint_name}"


class CreateIndexIfAbsent(SchemaOperation):
    """创建索引（已存在则跳过）"""

    def __init__(
        self,
        name: str,
        table: str,
        columns: Sequence[str],
        unique: bool = False,
        where: Optional[str] = None,
    ):
        if not columns:
            raise ValueError(f"索引 {name} 至少需要一个字段")
        self.name = validate_identifier(name)
        self.table = validate_identifier(table)
        self.columns = tuple(validate_identifier(col) for col in columns)
        self.unique = unique
        self.where = where

    def statement(self, conn: Connection) -> str:
        cols = ", ".join(_quote(conn, col) for col in self.columns)
        sql = (
            f"CREATE {'UNIQUE ' if self.unique else ''}INDEX {_quote(conn, self.name)} "
            f"ON {_quote(conn, self.table)} ({cols})"
        )
        if self.where:
            sql += f" WHERE {self.where}"
        return sql

    def apply(self, conn: Connection) -> bool:
        if index_exists(conn, self.table, self.name):
            return False
        conn.exec_driver_sql(self.statement(conn))
        return True

    def describe(self) -> str:
        return f"创建索引 {self.name} ON {self.table}({', '.join(self.columns)})"


class RunSQL(SchemaOperation):
    """
    执行原始 SQL

    仅用于本身就是幂等写法的语句（CREATE ... IF NOT EXISTS 等），每项一条语句。
    """

    def __init__(self, *statements: str, description: Optional[str] = None):
        self.statements = tuple(statements)
        self.description = description

    def apply(self, conn: Connection) -> bool:
        for stmt in self.statements:
            conn.exec_driver_sql(stmt)
        return bool(self.statements)

    def describe(self) -> str:
        if self.description:
            return self.description
        n = len(self.statements)
        return f"执行 {n} 条 SQL 语句"


class RunSQLFile(SchemaOperation):
    """执行 SQL 脚本文件（脚本内的语句必须是幂等写法）"""

    def __init__(self, path: Union[str, Path, Callable[[], Path]], missing_ok: bool = True):
        self._path = path
        self.missing_ok = missing_ok

    @property
    def path(self) -> Path:
        return Path(self._path() if callable(self._path) else self._path)

    def apply(self, conn: Connection) -> bool:
        path = self.path
        if not path.exists():
            if self.missing_ok:
                logger.warning(f"⚠️ 未找到 {path}，跳过")
                return False
            raise OperationFailure(f"SQL 脚本不存在: {path}")

        statements = split_sql_script(path.read_text(encoding="utf-8"))
        for stmt in statements:
            conn.exec_driver_sql(stmt)
        logger.info(f"已执行 {path.name} 中的 {len(statements)} 条语句")
        return bool(statements)

    def describe(self) -> str:
        return f"执行脚本 {self.path.name}"


class RenameValues(SchemaOperation):
    """
    批量修正字段值

    只更新仍为旧值的行，已修正的行不会被再次修改。
    """

    def __init__(
        self,
        table: str,
        column: str,
        mapping: Sequence[Tuple[str, str]],
        touch_column: Optional[str] = None,
    ):
        self.table = validate_identifier(table)
        self.column = validate_identifier(column)
        self.mapping = tuple(mapping)
        self.touch_column = validate_identifier(touch_column) if touch_column else None

    def apply(self, conn: Connection) -> bool:
        col = _quote(conn, self.column)
        assignments = f"{col} = :new_value"
        if self.touch_column:
            assignments += f", {_quote(conn, self.touch_column)} = CURRENT_TIMESTAMP"
        sql = text(f"UPDATE {_quote(conn, self.table)} SET {assignments} WHERE {col} = :old_value")

        updated = 0
        for old_value, new_value in self.mapping:
            if old_value == new_value:
                continue
            result = conn.execute(sql, {"old_value": old_value, "new_value": new_value})
            if result.rowcount:
                logger.info(f"{self.table}.{self.column}: {old_value!r} -> {new_value!r} ({result.rowcount} 行)")
                updated += result.rowcount
        return updated > 0

    def describe(self) -> str:
        return f"修正 {self.table}.{self.column} 的 {len(self.mapping)} 个取值"


class SeedRowsIfAbsent(SchemaOperation):
    """
    初始化数据行

    按 key_column 判断行是否存在，不存在则插入；
    已存在的行只补齐 fill_if_empty 中仍为 NULL 或 0 的字段。
    """

    def __init__(
        self,
        table: str,
        key_column: str,
        rows: Sequence[Mapping[str, Any]],
        fill_if_empty: Sequence[str] = (),
    ):
        self.table = validate_identifier(table)
        self.key_column = validate_identifier(key_column)
        self.rows = tuple(dict(row) for row in rows)
        self.fill_if_empty = tuple(validate_identifier(col) for col in fill_if_empty)
        for row in self.rows:
            if key_column not in row:
                raise ValueError(f"初始化数据缺少主键字段 {key_column}: {row}")
            for col in row:
                validate_identifier(col)

    def apply(self, conn: Connection) -> bool:
        table = _quote(conn, self.table)
        key = _quote(conn, self.key_column)
        changed = False

        for row in self.rows:
            existing = conn.execute(
                text(f"SELECT 1 FROM {table} WHERE {key} = :key"),
                {"key": row[self.key_column]},
            ).first()

            if existing is None:
                cols = list(row)
                conn.execute(
                    text(
                        f"INSERT INTO {table} ({', '.join(_quote(conn, c) for c in cols)}) "
                        f"VALUES ({', '.join(':' + c for c in cols)})"
                    ),
                    row,
                )
                changed = True
                continue

            for col in self.fill_if_empty:
                if col not in row:
                    continue
                qcol = _quote(conn, col)
                result = conn.execute(
                    text(
                        f"UPDATE {table} SET {qcol} = :value "
                        f"WHERE {key} = :key AND ({qcol} IS NULL OR {qcol} = 0)"
                    ),
                    {"value": row[col], "key": row[self.key_column]},
                )
                changed = changed or bool(result.rowcount)

        return changed

    def describe(self) -> str:
        return f"初始化 {self.table} 的 {len(self.rows)} 行数据"


class OnConnection(SchemaOperation):
    """把接收连接的函数包装成可组合的步骤"""

    def __init__(self, func: Callable[[Connection], Any], description: Optional[str] = None):
        self.func = func
        self.description = description or getattr(func, "__name__", repr(func))

    def apply(self, conn: Connection) -> bool:
        result = self.func(conn)
        return True if result is None else bool(result)

    def describe(self) -> str:
        return self.description


class Transactional(SchemaOperation):
    """
    多步骤事务操作

    所有步骤在同一个独占连接、同一个事务中执行；任意一步失败都会整体回滚，
    然后以 TransactionAborted 抛给执行引擎。
    """

    def __init__(self, *steps: SchemaOperation, description: Optional[str] = None):
        self.steps = tuple(steps)
        self.description = description

    def apply(self, conn: Connection) -> bool:
        changed = False
        total = len(self.steps)
        for index, step in enumerate(self.steps, start=1):
            logger.debug(f"Step {index}/{total}: {step.describe()}")
            try:
                changed = step.apply(conn) or changed
            except Exception as e:
                raise TransactionAborted(index, total, step.describe(), e) from e
        return changed

    def execute(self, ctx: MigrationContext) -> None:
        try:
            super().execute(ctx)
        except TransactionAborted as e:
            logger.error(f"❌ {e}")
            logger.error("⚠️ 事务已回滚")
            raise

    def describe(self) -> str:
        return self.description or f"事务执行 {len(self.steps)} 个步骤"


class Steps(SchemaOperation):
    """按顺序执行多个步骤，每个步骤各自提交（非原子）"""

    def __init__(self, *steps: SchemaOperation, description: Optional[str] = None):
        self.steps = tuple(steps)
        self.description = description

    def apply(self, conn: Connection) -> bool:
        changed = False
        for step in self.steps:
            changed = step.apply(conn) or changed
        return changed

    def execute(self, ctx: MigrationContext) -> None:
        for step in self.steps:
            step.execute(ctx)

    def describe(self) -> str:
        return self.description or f"依次执行 {len(self.steps)} 个步骤"
