"""
迁移定义

MigrationDefinition 描述一次结构/数据变更，进程启动时加载，之后不再修改。
operation 可以是任何实现了 ``execute(ctx)`` 的对象，执行成功即正常返回，失败则抛出异常。
"""
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple, Union, runtime_checkable

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, Row


@runtime_checkable
class Operation(Protocol):
    """迁移操作接口"""

    def execute(self, ctx: "MigrationContext") -> None: ...


@dataclass
class MigrationContext:
    """
    迁移执行上下文

    迁移操作只能通过上下文访问数据库，不直接引用全局连接。
    """
    engine: Engine
    definition: Optional["MigrationDefinition"] = None

    @property
    def name(self) -> str:
        return self.definition.name if self.definition else ""

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> int:
        """在独立的短事务中执行一条语句，返回受影响的行数"""
        with self.engine.begin() as conn:
            result = conn.execute(text(sql), params or {})
            return result.rowcount

    def fetch_all(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Row]:
        """执行查询并返回全部结果"""
        with self.engine.connect() as conn:
            return list(conn.execute(text(sql), params or {}).fetchall())

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        获取一个独占连接并开启事务

        代码块正常结束时提交，抛出异常时整体回滚后继续向上抛出。
        """
        with self.engine.begin() as conn:
            yield conn


class CallableOperation:
    """把普通函数包装成迁移操作"""

    def __init__(self, func: Callable[[MigrationContext], Any], description: Optional[str] = None):
        self.func = func
        self.description = description or getattr(func, "__name__", repr(func))

    def execute(self, ctx: MigrationContext) -> None:
        self.func(ctx)

    def describe(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"CallableOperation({self.description})"


OperationLike = Union[Operation, Callable[[MigrationContext], Any]]


def as_operation(value: Optional[OperationLike]) -> Optional[Operation]:
    """统一转换为 Operation，函数会被包装成 CallableOperation"""
    if value is None:
        return None
    if isinstance(value, Operation):
        return value
    if callable(value):
        return CallableOperation(value)
    raise TypeError(f"不支持的迁移操作类型: {type(value).__name__}")


@dataclass(frozen=True)
class MigrationDefinition:
    """单个迁移定义"""
    name: str
    version: str
    description: str
    operation: Operation
    depends_on: Tuple[str, ...] = field(default_factory=tuple)
    rollback: Optional[Operation] = None

    def __post_init__(self):
        # frozen dataclass 需要通过 object.__setattr__ 规范化字段
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "operation", as_operation(self.operation))
        object.__setattr__(self, "rollback", as_operation(self.rollback))
        if self.operation is None:
            raise TypeError(f"迁移 {self.name} 缺少 operation")

    @property
    def key(self) -> Tuple[str, str]:
        return self.name, self.version

    @property
    def label(self) -> str:
        return f"[{self.version}] {self.name}"
