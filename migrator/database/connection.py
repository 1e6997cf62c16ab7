from functools import lru_cache
from typing import Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from migrator.config.settings import settings


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """创建数据库引擎"""
    return create_engine(
        url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """获取进程内共享的数据库引擎（首次调用时创建）"""
    return create_db_engine()


def check_connection(engine: Engine) -> bool:
    """测试数据库连接是否可用"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ 数据库连接成功")
        return True
    except Exception as e:
        logger.error(f"❌ 数据库连接失败: {e}")
        return False
