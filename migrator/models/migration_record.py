from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Column, Field, SQLModel, Text


class MigrationStatus(str, Enum):
    """迁移执行状态"""
    PENDING = "PENDING"  # 待执行
    RUNNING = "RUNNING"  # 执行中（进程崩溃时会停留在此状态，需要人工检查）
    COMPLETED = "COMPLETED"  # 已完成
    FAILED = "FAILED"  # 失败
    SKIPPED = "SKIPPED"  # 依赖未完成，跳过


class MigrationRecord(SQLModel, table=True):
    """迁移执行历史表

    每个 (name, version) 只保留一行，每次执行都会原地更新为最新一次的结果
    """
    __tablename__ = "migration_history"
    __table_args__ = (UniqueConstraint("name", "version", name="uq_migration_history_name_version"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # 迁移标识
    name: str = Field(max_length=255, index=True)
    version: str = Field(max_length=50)

    # 执行状态
    status: str = Field(default=MigrationStatus.PENDING.value, max_length=50)

    # 错误信息（仅 FAILED 时有值）
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    # 时间信息
    executed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))

    # 耗时（毫秒）
    duration_ms: int = Field(default=0)

    @property
    def status_enum(self) -> MigrationStatus:
        return MigrationStatus(self.status)
