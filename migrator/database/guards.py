"""
幂等性检查

在执行结构变更之前通过数据库元数据（SQLAlchemy Inspector）判断目标对象是否已经存在，
已存在则跳过，保证迁移可以反复执行。
"""
import re
from enum import Enum
from typing import List, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.engine import Connection

from migrator.exceptions import InvalidIdentifier

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ObjectKind(str, Enum):
    """可检查的数据库对象类型"""
    TABLE = "table"
    COLUMN = "column"
    INDEX = "index"
    CONSTRAINT = "constraint"


def validate_identifier(identifier: str) -> str:
    """校验标识符只包含字母、数字和下划线"""
    if not isinstance(identifier, str) or not _IDENTIFIER_RE.match(identifier):
        raise InvalidIdentifier(str(identifier))
    return identifier


def split_qualified_name(kind: ObjectKind, qualified_name: str) -> Tuple[Optional[str], str, Optional[str]]:
    """
    拆分限定名

    TABLE 支持 ``table`` / ``schema.table``；
    其他类型支持 ``table.object`` / ``schema.table.object``。

    Returns:
        (schema, table, object_name)
    """
    parts = qualified_name.split(".")
    for part in parts:
        validate_identifier(part)

    kind = ObjectKind(kind)
    if kind == ObjectKind.TABLE:
        if len(parts) == 1:
            return None, parts[0], None
        if len(parts) == 2:
            return parts[0], parts[1], None
    else:
        if len(parts) == 2:
            return None, parts[0], parts[1]
        if len(parts) == 3:
            return parts[0], parts[1], parts[2]

    raise InvalidIdentifier(qualified_name)


def _constraint_names(conn: Connection, table: str, schema: Optional[str]) -> List[str]:
    inspector = inspect(conn)
    names: List[Optional[str]] = []

    pk = inspector.get_pk_constraint(table, schema=schema)
    names.append(pk.get("name"))
    names.extend(fk.get("name") for fk in inspector.get_foreign_keys(table, schema=schema))
    names.extend(uq.get("name") for uq in inspector.get_unique_constraints(table, schema=schema))
    try:
        names.extend(ck.get("name") for ck in inspector.get_check_constraints(table, schema=schema))
    except NotImplementedError:
        # 部分方言不支持反射 CHECK 约束
        pass

    return [name for name in names if name]


def table_exists(conn: Connection, table: str, schema: Optional[str] = None) -> bool:
    return inspect(conn).has_table(table, schema=schema)


def column_exists(conn: Connection, table: str, column: str, schema: Optional[str] = None) -> bool:
    if not table_exists(conn, table, schema):
        return False
    columns = inspect(conn).get_columns(table, schema=schema)
    return column in [col["name"] for col in columns]


def index_exists(conn: Connection, table: str, index: str, schema: Optional[str] = None) -> bool:
    if not table_exists(conn, table, schema):
        return False
    indexes = inspect(conn).get_indexes(table, schema=schema)
    return index in [idx["name"] for idx in indexes]


def constraint_exists(conn: Connection, table: str, constraint: str, schema: Optional[str] = None) -> bool:
    if not table_exists(conn, table, schema):
        return False
    return constraint in _constraint_names(conn, table, schema)


def exists(conn: Connection, kind: ObjectKind, qualified_name: str) -> bool:
    """
    检查数据库对象是否存在

    Args:
        conn: 数据库连接
        kind: 对象类型
        qualified_name: 限定名，例如 ``shipments`` / ``users.reset_token`` / ``public.shipments.fk_x``

    Returns:
        对象是否存在
    """
    kind = ObjectKind(kind)
    schema, table, name = split_qualified_name(kind, qualified_name)

    if kind == ObjectKind.TABLE:
        return table_exists(conn, table, schema)
    if kind == ObjectKind.COLUMN:
        return column_exists(conn, table, name, schema)
    if kind == ObjectKind.INDEX:
        return index_exists(conn, table, name, schema)
    return constraint_exists(conn, table, name, schema)
