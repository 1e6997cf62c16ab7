from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # 数据库连接配置
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "shipments"
    database_user: str = "postgres"
    database_password: str = ""

    # 完整连接串（设置后覆盖上面的分项配置，例如 Railway 提供的 DATABASE_DSN）
    database_dsn: str = ""

    # 是否输出 SQL 语句
    database_echo: bool = False

    # 日志级别
    log_level: str = "INFO"

    # 基础表结构脚本路径（留空使用内置的 schema.sql）
    schema_sql_path: str = ""

    @property
    def database_url(self) -> str:
        if self.database_dsn:
            return self.database_dsn
        return f"postgresql://{self.database_user}:{self.database_password}@{self.database_host}:{self.database_port}/{self.database_name}"

    @property
    def is_database_configured(self) -> bool:
        """检查数据库连接是否已配置"""
        return bool(self.database_dsn or self.database_password)

    @property
    def resolved_schema_sql_path(self) -> Path:
        """获取基础表结构脚本的实际路径"""
        if self.schema_sql_path:
            return Path(self.schema_sql_path)
        return Path(__file__).resolve().parent.parent / "migrations" / "sql" / "schema.sql"


settings = Settings()
