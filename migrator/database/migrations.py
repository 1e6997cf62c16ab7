"""
数据库迁移入口

自动检测并执行货运系统的数据库结构变更
"""
from typing import Optional, Sequence

from loguru import logger
from sqlalchemy.engine import Engine

from migrator.database.connection import get_engine
from migrator.migrations import MigrationDefinition, MigrationEngine, RunReport
from migrator.migrations.shipments import SHIPMENT_MIGRATIONS


def build_engine(
    engine: Optional[Engine] = None,
    definitions: Optional[Sequence[MigrationDefinition]] = None,
) -> MigrationEngine:
    """创建迁移引擎（默认使用全局数据库引擎和货运迁移列表）"""
    return MigrationEngine(
        engine or get_engine(),
        SHIPMENT_MIGRATIONS if definitions is None else definitions,
    )


def run_migrations(
    engine: Optional[Engine] = None,
    definitions: Optional[Sequence[MigrationDefinition]] = None,
) -> RunReport:
    """
    自动检测并执行所有待执行的迁移

    返回: RunReport（失败的迁移不会抛出异常，由调用方根据报告决定退出码）
    """
    return build_engine(engine, definitions).run_all()


def check_migrations(
    engine: Optional[Engine] = None,
    definitions: Optional[Sequence[MigrationDefinition]] = None,
) -> bool:
    """
    检查是否有待执行的迁移

    返回: True 表示有待执行的迁移
    """
    pending = build_engine(engine, definitions).pending()
    for definition in pending:
        logger.info(f"⏳ 待执行: {definition.label} {definition.description}")
    return bool(pending)
