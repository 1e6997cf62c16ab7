"""
迁移执行引擎

按依赖顺序逐个执行迁移，并把每个迁移的结果写入历史表：
- 已 COMPLETED 的迁移不会再次执行
- 依赖未 COMPLETED 的迁移记为 SKIPPED
- 单个迁移失败记为 FAILED，不会中断其他无关迁移
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger
from sqlalchemy.engine import Engine

from migrator.exceptions import RollbackError
from migrator.migrations.definition import MigrationContext, MigrationDefinition
from migrator.migrations.history import HistoryStore
from migrator.migrations.resolver import MigrationRegistry
from migrator.models import MigrationRecord, MigrationStatus


@dataclass
class RunEntry:
    """单个迁移在本次运行中的结果"""
    name: str
    version: str
    status: MigrationStatus
    error: Optional[str] = None
    blocked_by: Tuple[str, ...] = ()
    duration_ms: int = 0
    already_applied: bool = False


@dataclass
class RunReport:
    """一次运行的完整结果"""
    entries: List[RunEntry] = field(default_factory=list)

    def _with_status(self, status: MigrationStatus) -> List[RunEntry]:
        return [e for e in self.entries if e.status == status]

    @property
    def completed(self) -> List[RunEntry]:
        return self._with_status(MigrationStatus.COMPLETED)

    @property
    def failed(self) -> List[RunEntry]:
        return self._with_status(MigrationStatus.FAILED)

    @property
    def skipped(self) -> List[RunEntry]:
        return self._with_status(MigrationStatus.SKIPPED)

    @property
    def invoked(self) -> List[str]:
        """本次实际执行了 operation 的迁移"""
        return [
            e.name for e in self.entries
            if e.status in (MigrationStatus.COMPLETED, MigrationStatus.FAILED) and not e.already_applied
        ]

    @property
    def counts(self) -> Dict[MigrationStatus, int]:
        counts = {status: 0 for status in MigrationStatus}
        for entry in self.entries:
            counts[entry.status] += 1
        return counts

    @property
    def ok(self) -> bool:
        """没有失败也没有跳过"""
        return not self.failed and not self.skipped

    def get(self, name: str) -> Optional[RunEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


def _error_message(exc: BaseException) -> str:
    message = str(exc)
    return message if message else type(exc).__name__


class MigrationEngine:
    """迁移执行引擎"""

    def __init__(
        self,
        engine: Engine,
        registry: Union[MigrationRegistry, Sequence[MigrationDefinition]],
        history: Optional[HistoryStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.engine = engine
        # 注册表错误（重复、未知依赖、循环依赖）在这里就会抛出，此时还没有任何副作用
        self.registry = registry if isinstance(registry, MigrationRegistry) else MigrationRegistry(registry)
        self.history = history or HistoryStore(engine)
        self._clock = clock or (lambda: datetime.now(UTC))

    def _now(self) -> datetime:
        return self._clock()

    def _context(self, definition: MigrationDefinition) -> MigrationContext:
        return MigrationContext(engine=self.engine, definition=definition)

    def pending(self) -> List[MigrationDefinition]:
        """返回尚未 COMPLETED 的迁移"""
        self.history.ensure_schema()
        statuses = self.history.statuses()
        return [
            d for d in self.registry
            if statuses.get(d.key) != MigrationStatus.COMPLETED
        ]

    def get_history(self) -> List[MigrationRecord]:
        """获取迁移历史（最近执行的在前）"""
        self.history.ensure_schema()
        return self.history.get_history()

    def reset_history(self) -> int:
        """清空迁移历史"""
        self.history.ensure_schema()
        return self.history.reset()

    def run_all(self) -> RunReport:
        """执行所有待执行的迁移"""
        logger.info("🔍 开始检查数据库迁移...")
        self.history.ensure_schema()

        statuses = self.history.statuses()
        current: Dict[str, MigrationStatus] = {}
        report = RunReport()

        for definition in self.registry:
            entry = self._run_one(definition, statuses, current)
            current[definition.name] = entry.status
            report.entries.append(entry)

        counts = report.counts
        logger.info("=" * 80)
        logger.info(
            f"📊 迁移执行完成: 成功 {counts[MigrationStatus.COMPLETED]}, "
            f"跳过 {counts[MigrationStatus.SKIPPED]}, 失败 {counts[MigrationStatus.FAILED]}"
        )
        logger.info("=" * 80)

        if report.failed:
            logger.error("⚠️ 部分迁移失败，请检查日志并手动修复")

        return report

    def _run_one(
        self,
        definition: MigrationDefinition,
        statuses: Dict[Tuple[str, str], MigrationStatus],
        current: Dict[str, MigrationStatus],
    ) -> RunEntry:
        if statuses.get(definition.key) == MigrationStatus.COMPLETED:
            logger.info(f"⏭️  迁移 {definition.label} 已执行，跳过")
            return RunEntry(
                name=definition.name,
                version=definition.version,
                status=MigrationStatus.COMPLETED,
                already_applied=True,
            )

        blocked_by = tuple(
            dep for dep in definition.depends_on
            if current.get(dep) != MigrationStatus.COMPLETED
        )
        if blocked_by:
            logger.warning(f"⏭️  迁移 {definition.label} 的依赖未完成 ({', '.join(blocked_by)})，跳过")
            self.history.mark_skipped(definition.name, definition.version, self._now())
            return RunEntry(
                name=definition.name,
                version=definition.version,
                status=MigrationStatus.SKIPPED,
                blocked_by=blocked_by,
            )

        logger.info("=" * 80)
        logger.info(f"开始执行迁移 {definition.label}: {definition.description}")
        logger.info("=" * 80)

        # 先落库 RUNNING，进程中途退出时能看到卡住的记录
        self.history.mark_running(definition.name, definition.version, self._now())
        started = time.perf_counter()

        try:
            definition.operation.execute(self._context(definition))
        except Exception as e:
            duration_ms = int((time.perf_counter() - started) * 1000)
            message = _error_message(e)
            logger.error(f"❌ 迁移 {definition.label} 执行失败: {message}")
            self.history.mark_failed(definition.name, definition.version, message, self._now(), duration_ms)
            return RunEntry(
                name=definition.name,
                version=definition.version,
                status=MigrationStatus.FAILED,
                error=message,
                duration_ms=duration_ms,
            )

        duration_ms = int((time.perf_counter() - started) * 1000)
        self.history.mark_completed(definition.name, definition.version, self._now(), duration_ms)
        logger.success(f"🎉 迁移 {definition.label} 执行成功！({duration_ms}ms)")
        return RunEntry(
            name=definition.name,
            version=definition.version,
            status=MigrationStatus.COMPLETED,
            duration_ms=duration_ms,
        )

    def rollback(self, name: str) -> MigrationRecord:
        """
        回滚单个迁移

        只在显式请求时执行；仍有已完成的迁移依赖它时拒绝回滚。
        回滚成功后历史记录恢复为 PENDING，下次运行会重新执行。
        """
        definition = self.registry.get(name)
        if definition is None:
            raise RollbackError(f"迁移 {name} 不存在")
        if definition.rollback is None:
            raise RollbackError(f"迁移 {definition.label} 没有定义回滚操作")

        self.history.ensure_schema()
        statuses = self.history.statuses()
        if statuses.get(definition.key) != MigrationStatus.COMPLETED:
            raise RollbackError(f"迁移 {definition.label} 尚未完成，无需回滚")

        blocking = [
            d.name for d in self.registry.dependents_of(name)
            if statuses.get(d.key) == MigrationStatus.COMPLETED
        ]
        if blocking:
            raise RollbackError(
                f"迁移 {definition.label} 仍被以下已完成的迁移依赖: {', '.join(blocking)}，请先回滚它们"
            )

        logger.info(f"开始回滚迁移 {definition.label}")
        try:
            definition.rollback.execute(self._context(definition))
        except Exception as e:
            logger.error(f"❌ 回滚迁移 {definition.label} 失败: {_error_message(e)}")
            raise

        record = self.history.mark_pending(definition.name, definition.version)
        logger.success(f"✅ 迁移 {definition.label} 已回滚")
        return record
