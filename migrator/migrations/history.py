"""
迁移历史记录

每个 (name, version) 在 migration_history 表中只有一行，每次执行时原地更新。
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, select

from migrator.models import MigrationRecord, MigrationStatus


class HistoryStore:
    """迁移历史存储"""

    def __init__(self, engine: Engine):
        self._engine = engine

    def ensure_schema(self):
        """创建迁移历史表（已存在则跳过）"""
        SQLModel.metadata.create_all(self._engine, tables=[MigrationRecord.__table__])

    def get(self, name: str, version: str) -> Optional[MigrationRecord]:
        with Session(self._engine) as session:
            return session.exec(
                select(MigrationRecord).where(
                    MigrationRecord.name == name,
                    MigrationRecord.version == version,
                )
            ).first()

    def statuses(self) -> Dict[Tuple[str, str], MigrationStatus]:
        """获取所有迁移的最新状态"""
        with Session(self._engine) as session:
            records = session.exec(select(MigrationRecord)).all()
            return {(r.name, r.version): MigrationStatus(r.status) for r in records}

    def _upsert(self, name: str, version: str, **fields) -> MigrationRecord:
        with Session(self._engine) as session:
            record = session.exec(
                select(MigrationRecord).where(
                    MigrationRecord.name == name,
                    MigrationRecord.version == version,
                )
            ).first()

            if not record:
                record = MigrationRecord(name=name, version=version)

            for key, value in fields.items():
                setattr(record, key, value)

            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def mark_running(self, name: str, version: str, started_at: datetime) -> MigrationRecord:
        return self._upsert(
            name,
            version,
            status=MigrationStatus.RUNNING.value,
            error_message=None,
            executed_at=started_at,
            completed_at=None,
            duration_ms=0,
        )

    def mark_completed(self, name: str, version: str, completed_at: datetime, duration_ms: int) -> MigrationRecord:
        return self._upsert(
            name,
            version,
            status=MigrationStatus.COMPLETED.value,
            error_message=None,
            completed_at=completed_at,
            duration_ms=duration_ms,
        )

    def mark_failed(
        self,
        name: str,
        version: str,
        error_message: str,
        completed_at: datetime,
        duration_ms: int,
    ) -> MigrationRecord:
        return self._upsert(
            name,
            version,
            status=MigrationStatus.FAILED.value,
            error_message=error_message,
            completed_at=completed_at,
            duration_ms=duration_ms,
        )

    def mark_skipped(self, name: str, version: str, at: datetime) -> MigrationRecord:
        return self._upsert(
            name,
            version,
            status=MigrationStatus.SKIPPED.value,
            error_message=None,
            executed_at=at,
            completed_at=at,
            duration_ms=0,
        )

    def mark_pending(self, name: str, version: str) -> MigrationRecord:
        """回滚后把记录恢复为待执行"""
        return self._upsert(
            name,
            version,
            status=MigrationStatus.PENDING.value,
            error_message=None,
            executed_at=None,
            completed_at=None,
            duration_ms=0,
        )

    def get_history(self) -> List[MigrationRecord]:
        """获取迁移历史（最近执行的在前）"""
        with Session(self._engine) as session:
            statement = select(MigrationRecord).order_by(
                MigrationRecord.executed_at.desc().nulls_last(),
                MigrationRecord.id.desc(),
            )
            return list(session.exec(statement).all())

    def reset(self) -> int:
        """清空迁移历史，返回删除的行数"""
        with Session(self._engine) as session:
            result = session.exec(delete(MigrationRecord))
            session.commit()
            logger.info(f"✅ 已清空迁移历史（{result.rowcount} 条）")
            return result.rowcount
