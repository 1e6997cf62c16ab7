"""
迁移系统异常定义

RegistryError 及其子类在注册表构建阶段抛出，任何迁移执行之前就会终止整个运行；
OperationFailure 由单个迁移抛出，执行引擎逐个捕获并记录为 FAILED，不影响其他迁移。
"""
from typing import Optional, Sequence


class MigrationError(Exception):
    """迁移系统异常基类"""


class RegistryError(MigrationError):
    """迁移注册表无效（重复名称、未知依赖、循环依赖）"""


class DuplicateMigration(RegistryError):
    """同一注册表中出现重名迁移"""

    def __init__(self, name: str):
        super().__init__(f"迁移名称重复: {name}")
        self.name = name


class UnknownDependency(RegistryError):
    """depends_on 引用了注册表中不存在的迁移"""

    def __init__(self, name: str, missing_ref: str):
        super().__init__(f"迁移 {name} 依赖了不存在的迁移 {missing_ref}")
        self.name = name
        self.missing_ref = missing_ref


class CyclicDependency(RegistryError):
    """依赖关系中存在环"""

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__(f"检测到循环依赖: {' -> '.join(self.path)}")


class OperationFailure(MigrationError):
    """单个迁移操作执行失败"""


class TransactionAborted(OperationFailure):
    """多步骤事务中某一步失败，整个事务已回滚"""

    def __init__(self, step_index: int, step_count: int, step: str, cause: Optional[BaseException] = None):
        message = f"事务已回滚: 第 {step_index}/{step_count} 步失败 ({step})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.step_index = step_index
        self.step_count = step_count
        self.step = step


class InvalidIdentifier(MigrationError, ValueError):
    """表名/列名等标识符不合法"""

    def __init__(self, identifier: str):
        super().__init__(f"非法的标识符: {identifier!r}")
        self.identifier = identifier


class RollbackError(MigrationError):
    """回滚请求无法执行"""
