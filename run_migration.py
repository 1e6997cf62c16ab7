#!/usr/bin/env python
"""
手动执行数据库迁移脚本

用法:
    python run_migration.py                  # 执行所有待执行的迁移
    python run_migration.py --check          # 仅检查是否有待执行的迁移
    python run_migration.py --status         # 查看迁移历史
    python run_migration.py --reset          # 清空迁移历史（下次运行会重新执行所有迁移）
    python run_migration.py --rollback NAME  # 回滚指定迁移
"""
import argparse
import sys
from typing import List, Optional

from loguru import logger
from sqlalchemy.engine import Engine

from migrator.config.settings import settings
from migrator.database.connection import check_connection, get_engine
from migrator.database.migrations import build_engine
from migrator.exceptions import RegistryError, RollbackError
from migrator.migrations import MigrationEngine
from migrator.models import MigrationStatus

STATUS_ICONS = {
    MigrationStatus.COMPLETED: "✅",
    MigrationStatus.FAILED: "❌",
    MigrationStatus.SKIPPED: "⏭️",
    MigrationStatus.RUNNING: "⏳",
    MigrationStatus.PENDING: "⏳",
}


def configure_logging(level: Optional[str] = None):
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.log_level).upper())


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="货运系统数据库迁移")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--check", action="store_true", help="仅检查是否有待执行的迁移")
    group.add_argument("--status", action="store_true", help="查看迁移历史")
    group.add_argument("--reset", action="store_true", help="清空迁移历史")
    group.add_argument("--rollback", metavar="NAME", help="回滚指定迁移")
    return parser.parse_args(argv)


def show_status(migrator: MigrationEngine):
    """输出迁移历史"""
    history = migrator.get_history()
    logger.info("=" * 80)
    logger.info("📋 迁移历史")
    logger.info("=" * 80)

    if not history:
        logger.info("暂无迁移记录")
        return

    for record in history:
        status = record.status_enum
        logger.info(f"{STATUS_ICONS[status]} [{record.version}] {record.name} - {status.value}")
        if record.completed_at:
            logger.info(f"   完成时间: {record.completed_at.isoformat()}")
        if record.duration_ms:
            logger.info(f"   耗时: {record.duration_ms}ms")
        if record.error_message:
            logger.info(f"   错误: {record.error_message}")


def main(argv: Optional[List[str]] = None, engine: Optional[Engine] = None) -> int:
    args = parse_args(argv)

    if engine is None:
        if not settings.is_database_configured:
            logger.warning("⚠️ 未配置数据库连接，跳过迁移")
            return 0
        engine = get_engine()

    if not check_connection(engine):
        return 1

    try:
        migrator = build_engine(engine)
    except RegistryError as e:
        logger.error(f"❌ 迁移列表无效: {e}")
        return 1

    if args.check:
        if migrator.pending():
            logger.warning("⚠️ 存在待执行的迁移")
            return 1
        logger.success("✅ 所有迁移已完成")
        return 0

    if args.status:
        show_status(migrator)
        return 0

    if args.reset:
        migrator.reset_history()
        logger.warning("⚠️ 迁移历史已清空，下次运行会重新执行所有迁移")
        return 0

    if args.rollback:
        try:
            migrator.rollback(args.rollback)
        except RollbackError as e:
            logger.error(f"❌ {e}")
            return 1
        except Exception as e:
            logger.error(f"回滚失败: {e}")
            return 1
        return 0

    try:
        report = migrator.run_all()
    except Exception as e:
        logger.error(f"迁移失败: {e}")
        return 1

    if not report.ok:
        return 1
    logger.success("✅ 迁移执行完成")
    return 0


def cli():
    configure_logging()
    sys.exit(main())


if __name__ == "__main__":
    cli()
