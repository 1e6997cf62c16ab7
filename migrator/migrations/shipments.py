"""
货运系统数据库迁移

迁移执行顺序:
1. 基础表结构（schema.sql）
2. 性能索引
3. 新增字段（available_bins、total_capacity、密码重置字段）
4. 新增表（通知、刷新令牌、供应商门户、归档）
5. 外键约束、软删除和审计字段
6. 数据修正（周日期回填、供应商名称修正）
7. 进口成本核算
"""
from datetime import date, datetime
from typing import Optional

from loguru import logger
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    bindparam,
    text,
)

from migrator.config.settings import settings
from migrator.database.schema_ops import (
    AddColumnIfAbsent,
    AddForeignKeyIfAbsent,
    CreateIndexIfAbsent,
    CreateTableIfAbsent,
    RenameValues,
    RunSQL,
    RunSQLFile,
    SeedRowsIfAbsent,
    Steps,
    Transactional,
)
from migrator.migrations.definition import MigrationContext, MigrationDefinition

BASELINE = "schema-creation"

# 默认仓库及其库位数
WAREHOUSES = [
    ("PRETORIA", 650),
    ("KLAPMUTS", 384),
    ("Offsite", 384),
]

# 供应商名称修正 (旧名称, 新名称)
SUPPLIER_NAME_FIXES = [
    ("AB Mauri ", "AB Mauri"),  # 去掉结尾空格
    ("Aromsa", "AROMSA"),
    ("Shakti Chemicals", "SHAKTI CHEMICALS"),
    (" Sacco", "SACCO"),  # 去掉开头空格
    ("Deltaris", "QUERCYL"),  # 与货运数据保持一致
]

SHIPMENT_SUPPLIER_NAME_FIXES = [
    ("Shakti Chemicals", "SHAKTI CHEMICALS"),
]


def _money(table: str, column: str, precision: int = 12, scale: int = 2) -> AddColumnIfAbsent:
    return AddColumnIfAbsent(table, column, Numeric(precision, scale), server_default="0")


def calculate_week_date(week_number, today: Optional[date] = None) -> Optional[date]:
    """
    根据周数推算该周周一的日期

    周数本身不带年份，按当前日期推断年份：
    12 月份看到 1-10 周视为明年，1 月份看到 45 周以后视为去年，
    与当前周相差超过 20 周的也按跨年处理。
    """
    try:
        week = int(str(week_number).strip())
    except (TypeError, ValueError):
        return None
    if week < 1 or week > 53:
        return None

    today = today or date.today()
    current_week = today.isocalendar().week
    year = today.year

    if today.month == 12 and week <= 10:
        year += 1
    elif today.month == 1 and week >= 45:
        year -= 1
    elif week < current_week - 20:
        year += 1
    elif week > current_week + 20:
        year -= 1

    try:
        return date.fromisocalendar(year, week, 1)
    except ValueError:
        # 该年份没有第 53 周
        return None


def backfill_week_dates(ctx: MigrationContext, today: Optional[date] = None):
    """根据 week_number 回填 selected_week_date（只处理尚未填写的行）"""
    update = text(
        "UPDATE shipments SET selected_week_date = :week_date "
        "WHERE id = :id AND selected_week_date IS NULL"
    ).bindparams(bindparam("week_date", type_=DateTime()))

    with ctx.transaction() as conn:
        rows = conn.execute(text(
            "SELECT id, week_number FROM shipments "
            "WHERE week_number IS NOT NULL AND selected_week_date IS NULL"
        )).fetchall()

        updated = 0
        for shipment_id, week_number in rows:
            week_date = calculate_week_date(week_number, today)
            if week_date is None:
                logger.debug(f"跳过无法解析的周数: shipment={shipment_id}, week={week_number!r}")
                continue
            conn.execute(update, {"week_date": datetime.combine(week_date, datetime.min.time()), "id": shipment_id})
            updated += 1

    logger.info(f"✅ 已回填 {updated} 条货运记录的 selected_week_date")


SHIPMENT_MIGRATIONS = [
    MigrationDefinition(
        name=BASELINE,
        version="000",
        description="Create base schema from schema.sql",
        operation=RunSQLFile(lambda: settings.resolved_schema_sql_path),
    ),

    # 性能索引
    MigrationDefinition(
        name="add-performance-indexes",
        version="001",
        description="Add performance indexes to shipments table",
        depends_on=[BASELINE],
        operation=Steps(
            CreateIndexIfAbsent("idx_shipments_warehouse", "shipments", ["receiving_warehouse"]),
            CreateIndexIfAbsent("idx_shipments_status_week", "shipments", ["latest_status", "week_number"]),
            CreateIndexIfAbsent("idx_shipments_status_warehouse", "shipments", ["latest_status", "receiving_warehouse"]),
            CreateIndexIfAbsent("idx_shipments_order_ref", "shipments", ["order_ref"]),
            CreateIndexIfAbsent("idx_shipments_created_at", "shipments", ["created_at"]),
            CreateIndexIfAbsent("idx_shipments_inspection_status", "shipments", ["inspection_status"]),
            CreateIndexIfAbsent("idx_shipments_receiving_status", "shipments", ["receiving_status"]),
        ),
    ),

    # 新增字段
    MigrationDefinition(
        name="add-available-bins",
        version="002",
        description="Add available_bins column to warehouse_capacity table",
        depends_on=[BASELINE],
        operation=Transactional(
            AddColumnIfAbsent("warehouse_capacity", "available_bins", Integer, server_default="0"),
            SeedRowsIfAbsent(
                "warehouse_capacity",
                "warehouse_name",
                [{"warehouse_name": name, "bins_used": 0, "available_bins": bins} for name, bins in WAREHOUSES],
                fill_if_empty=["available_bins"],
            ),
        ),
    ),
    MigrationDefinition(
        name="add-total-capacity",
        version="003",
        description="Add total_capacity column to warehouse_capacity table",
        depends_on=[BASELINE, "add-available-bins"],
        operation=Transactional(
            AddColumnIfAbsent("warehouse_capacity", "total_capacity", Integer, server_default="0"),
            SeedRowsIfAbsent(
                "warehouse_capacity",
                "warehouse_name",
                [
                    {"warehouse_name": name, "total_capacity": capacity, "bins_used": 0, "available_bins": capacity}
                    for name, capacity in WAREHOUSES
                ],
                fill_if_empty=["total_capacity"],
            ),
        ),
    ),
    MigrationDefinition(
        name="add-password-reset",
        version="004",
        description="Add password reset token columns to users table",
        depends_on=[BASELINE],
        operation=Transactional(
            AddColumnIfAbsent("users", "reset_token", String(255)),
            AddColumnIfAbsent("users", "reset_token_expiry", DateTime()),
            CreateIndexIfAbsent("idx_users_reset_token", "users", ["reset_token"], where="reset_token IS NOT NULL"),
        ),
        rollback=RunSQL(
            "DROP INDEX IF EXISTS idx_users_reset_token",
            "ALTER TABLE users DROP COLUMN IF EXISTS reset_token_expiry",
            "ALTER TABLE users DROP COLUMN IF EXISTS reset_token",
            description="删除密码重置字段",
        ),
    ),

    # 新增表
    MigrationDefinition(
        name="add-notifications-tables",
        version="005",
        description="Create notification preferences, logs, and digest queue tables",
        depends_on=[BASELINE],
        operation=Steps(
            RunSQL(
                """
                CREATE TABLE IF NOT EXISTS notification_preferences (
                  id SERIAL PRIMARY KEY,
                  user_id TEXT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
                  notify_shipment_arrival BOOLEAN DEFAULT true,
                  notify_inspection_failed BOOLEAN DEFAULT true,
                  notify_inspection_passed BOOLEAN DEFAULT true,
                  notify_warehouse_capacity BOOLEAN DEFAULT true,
                  notify_delayed_shipment BOOLEAN DEFAULT true,
                  notify_post_arrival_update BOOLEAN DEFAULT true,
                  notify_workflow_assigned BOOLEAN DEFAULT true,
                  email_enabled BOOLEAN DEFAULT true,
                  email_frequency VARCHAR(50) DEFAULT 'immediate',
                  email_address TEXT,
                  created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                  updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS notification_log (
                  id SERIAL PRIMARY KEY,
                  user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                  event_type VARCHAR(100) NOT NULL,
                  shipment_id TEXT REFERENCES shipments(id) ON DELETE SET NULL,
                  subject TEXT NOT NULL,
                  message TEXT NOT NULL,
                  status VARCHAR(50) DEFAULT 'sent',
                  delivery_method VARCHAR(50) DEFAULT 'email',
                  sent_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                  error_message TEXT
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS notification_digest_queue (
                  id SERIAL PRIMARY KEY,
                  user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                  event_type VARCHAR(100) NOT NULL,
                  shipment_id TEXT REFERENCES shipments(id) ON DELETE SET NULL,
                  event_data JSONB,
                  created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                  processed_at TIMESTAMP WITH TIME ZONE
                )
                """,
                description="创建通知相关表",
            ),
            CreateIndexIfAbsent("idx_notification_prefs_user", "notification_preferences", ["user_id"]),
            CreateIndexIfAbsent("idx_notification_log_user", "notification_log", ["user_id"]),
            CreateIndexIfAbsent("idx_notification_log_created", "notification_log", ["sent_at"]),
            CreateIndexIfAbsent("idx_notification_log_event", "notification_log", ["event_type"]),
            CreateIndexIfAbsent("idx_digest_queue_user", "notification_digest_queue", ["user_id"]),
            CreateIndexIfAbsent("idx_digest_queue_processed", "notification_digest_queue", ["processed_at"]),
        ),
    ),
    MigrationDefinition(
        name="add-refresh-tokens-table",
        version="006",
        description="Create refresh_tokens table for JWT token refresh mechanism",
        depends_on=[BASELINE],
        operation=Steps(
            CreateTableIfAbsent(
                "refresh_tokens",
                [
                    Column("id", Integer, primary_key=True),
                    Column("user_id", Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
                    Column("token", Text, nullable=False, unique=True),
                    Column("expires_at", DateTime(timezone=True), nullable=False),
                    Column("created_at", DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP")),
                    Column("revoked_at", DateTime(timezone=True)),
                    Column("ip_address", String(45)),
                    Column("user_agent", Text),
                ],
                constraints=[CheckConstraint("revoked_at IS NULL", name="no_revoked_tokens")],
            ),
            CreateIndexIfAbsent("idx_refresh_tokens_token", "refresh_tokens", ["token"]),
            CreateIndexIfAbsent("idx_refresh_tokens_user_id", "refresh_tokens", ["user_id"]),
            CreateIndexIfAbsent("idx_refresh_tokens_expires_at", "refresh_tokens", ["expires_at"]),
        ),
        rollback=RunSQL("DROP TABLE IF EXISTS refresh_tokens", description="删除 refresh_tokens 表"),
    ),
    MigrationDefinition(
        name="add-supplier-accounts",
        version="007",
        description="Create supplier portal tables (accounts and documents)",
        depends_on=[BASELINE],
        operation=Steps(
            RunSQL(
                """
                CREATE TABLE IF NOT EXISTS supplier_accounts (
                  id SERIAL PRIMARY KEY,
                  supplier_id TEXT NOT NULL UNIQUE REFERENCES suppliers(id) ON DELETE CASCADE,
                  email TEXT NOT NULL UNIQUE,
                  password_hash TEXT NOT NULL,
                  is_verified BOOLEAN DEFAULT false,
                  verified_at TIMESTAMP WITH TIME ZONE,
                  last_login TIMESTAMP WITH TIME ZONE,
                  created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                  updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                  is_active BOOLEAN DEFAULT true
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS supplier_documents (
                  id SERIAL PRIMARY KEY,
                  shipment_id TEXT NOT NULL REFERENCES shipments(id) ON DELETE CASCADE,
                  supplier_id TEXT NOT NULL REFERENCES suppliers(id) ON DELETE CASCADE,
                  document_type VARCHAR(50) NOT NULL,
                  file_name TEXT NOT NULL,
                  file_path TEXT NOT NULL,
                  file_size INTEGER,
                  mime_type VARCHAR(100),
                  uploaded_by TEXT NOT NULL,
                  uploaded_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                  description TEXT,
                  is_verified BOOLEAN DEFAULT false,
                  verified_by TEXT,
                  verified_at TIMESTAMP WITH TIME ZONE
                )
                """,
                description="创建供应商门户表",
            ),
            AddColumnIfAbsent("suppliers", "portal_enabled", Boolean, server_default="true"),
            CreateIndexIfAbsent("idx_supplier_accounts_email", "supplier_accounts", ["email"]),
            CreateIndexIfAbsent("idx_supplier_accounts_supplier_id", "supplier_accounts", ["supplier_id"]),
            CreateIndexIfAbsent("idx_supplier_documents_shipment", "supplier_documents", ["shipment_id"]),
            CreateIndexIfAbsent("idx_supplier_documents_supplier", "supplier_documents", ["supplier_id"]),
            CreateIndexIfAbsent("idx_supplier_documents_type", "supplier_documents", ["document_type"]),
        ),
    ),
    MigrationDefinition(
        name="add-archives-table",
        version="008",
        description="Create archives table for storing archived shipments",
        depends_on=[BASELINE],
        operation=Steps(
            CreateTableIfAbsent(
                "archives",
                [
                    Column("id", Integer, primary_key=True),
                    Column("file_name", String(255), nullable=False, unique=True),
                    Column("archived_at", DateTime(), nullable=False, server_default=text("CURRENT_TIMESTAMP")),
                    Column("total_shipments", Integer, nullable=False, server_default=text("0")),
                    Column("data", Text, nullable=False),
                    Column("created_by", String(255), ForeignKey("users.id", ondelete="SET NULL")),
                ],
            ),
            CreateIndexIfAbsent("idx_archives_archived_at", "archives", ["archived_at"]),
            CreateIndexIfAbsent("idx_archives_file_name", "archives", ["file_name"]),
        ),
        rollback=RunSQL("DROP TABLE IF EXISTS archives", description="删除 archives 表"),
    ),

    # 驳回字段
    MigrationDefinition(
        name="add-rejection-fields",
        version="013",
        description="Add rejection fields to shipments table",
        depends_on=[BASELINE],
        operation=Transactional(
            AddColumnIfAbsent("shipments", "rejection_date", DateTime()),
            AddColumnIfAbsent("shipments", "rejection_reason", Text),
            AddColumnIfAbsent("shipments", "rejected_by", String(255)),
        ),
        rollback=RunSQL(
            "ALTER TABLE shipments DROP COLUMN IF EXISTS rejected_by",
            "ALTER TABLE shipments DROP COLUMN IF EXISTS rejection_reason",
            "ALTER TABLE shipments DROP COLUMN IF EXISTS rejection_date",
            description="删除驳回字段",
        ),
    ),

    # 外键约束与软删除
    MigrationDefinition(
        name="add-referential-integrity",
        version="009",
        description="Add foreign key constraints, soft-delete and audit columns",
        depends_on=[BASELINE, "add-notifications-tables", "add-supplier-accounts", "add-rejection-fields"],
        operation=Transactional(
            AddForeignKeyIfAbsent("shipments", "inspected_by", "users", "id", "fk_shipments_inspected_by"),
            AddForeignKeyIfAbsent("shipments", "received_by", "users", "id", "fk_shipments_received_by"),
            AddForeignKeyIfAbsent("shipments", "rejected_by", "users", "id", "fk_shipments_rejected_by"),
            AddForeignKeyIfAbsent(
                "supplier_documents", "verified_by", "users", "id", "fk_supplier_documents_verified_by"
            ),
            AddColumnIfAbsent("shipments", "deleted_at", DateTime(timezone=True)),
            AddColumnIfAbsent("suppliers", "deleted_at", DateTime(timezone=True)),
            AddColumnIfAbsent("users", "deleted_at", DateTime(timezone=True)),
            AddColumnIfAbsent("users", "created_by", String(255)),
            AddColumnIfAbsent("users", "updated_by", String(255)),
            description="添加外键约束、软删除和审计字段",
        ),
    ),

    # 数据修正
    MigrationDefinition(
        name="backfill-week-dates",
        version="010",
        description="Backfill selected_week_date from week_number",
        depends_on=[BASELINE],
        operation=backfill_week_dates,
    ),
    MigrationDefinition(
        name="fix-supplier-names",
        version="011",
        description="Fix supplier name inconsistencies and standardization",
        depends_on=[BASELINE],
        operation=RenameValues("suppliers", "name", SUPPLIER_NAME_FIXES, touch_column="updated_at"),
    ),
    MigrationDefinition(
        name="fix-shipment-supplier-names",
        version="012",
        description="Fix shipment supplier name inconsistencies",
        depends_on=[BASELINE, "fix-supplier-names"],
        operation=RenameValues("shipments", "supplier", SHIPMENT_SUPPLIER_NAME_FIXES, touch_column="updated_at"),
    ),

    # 进口成本核算
    MigrationDefinition(
        name="add-import-costing-tables",
        version="014",
        description="Create import cost estimates and exchange rate cache tables",
        depends_on=[BASELINE],
        operation=Steps(
            RunSQL(
                """
                CREATE TABLE IF NOT EXISTS import_cost_estimates (
                  id VARCHAR(255) PRIMARY KEY,
                  shipment_id VARCHAR(255) REFERENCES shipments(id) ON DELETE SET NULL,
                  supplier_id VARCHAR(255) REFERENCES suppliers(id) ON DELETE SET NULL,
                  reference_number VARCHAR(100),
                  country_of_destination VARCHAR(100) DEFAULT 'South Africa',
                  port_of_discharge VARCHAR(50),
                  shipping_line VARCHAR(100),
                  routing VARCHAR(255),
                  frequency VARCHAR(50),
                  transit_time_days INTEGER,
                  inco_terms VARCHAR(20),
                  inco_term_place VARCHAR(100),
                  container_type VARCHAR(50),
                  quantity INTEGER DEFAULT 1,
                  hs_code VARCHAR(50),
                  gross_weight_kg NUMERIC(12,2),
                  total_gross_weight_kg NUMERIC(12,2),
                  origin_rate_usd NUMERIC(12,2),
                  ocean_freight_rate_usd NUMERIC(12,2),
                  commodity VARCHAR(255),
                  invoice_value_usd NUMERIC(14,2) DEFAULT 0,
                  invoice_value_eur NUMERIC(14,2) DEFAULT 0,
                  customs_value_zar NUMERIC(14,2) DEFAULT 0,
                  supplier_name VARCHAR(255),
                  validity_date DATE,
                  costing_date DATE DEFAULT CURRENT_DATE,
                  payment_terms VARCHAR(100),
                  roe_origin NUMERIC(12,6),
                  origin_charge_usd NUMERIC(12,2) DEFAULT 0,
                  origin_charge_eur NUMERIC(12,2) DEFAULT 0,
                  roe_eur NUMERIC(12,6),
                  origin_charge_zar NUMERIC(14,2) DEFAULT 0,
                  total_origin_charges_zar NUMERIC(14,2) DEFAULT 0,
                  thc_zar NUMERIC(12,2) DEFAULT 0,
                  gate_door_zar NUMERIC(12,2) DEFAULT 0,
                  insurance_zar NUMERIC(12,2) DEFAULT 0,
                  shipping_line_fee_zar NUMERIC(12,2) DEFAULT 0,
                  port_inland_release_fee_zar NUMERIC(12,2) DEFAULT 0,
                  cto_zar NUMERIC(12,2) DEFAULT 0,
                  transport_port_to_warehouse_zar NUMERIC(12,2) DEFAULT 0,
                  delivery_only_trans_zar NUMERIC(12,2) DEFAULT 0,
                  unpack_reload_zar NUMERIC(12,2) DEFAULT 0,
                  destination_charges_subtotal_zar NUMERIC(14,2) DEFAULT 0,
                  customs_duty_zar NUMERIC(12,2) DEFAULT 0,
                  customs_duty_not_applicable BOOLEAN DEFAULT false,
                  customs_disbursements_subtotal_zar NUMERIC(14,2) DEFAULT 0,
                  documentation_fee_zar NUMERIC(12,2) DEFAULT 0,
                  communication_fee_zar NUMERIC(12,2) DEFAULT 0,
                  edif_fee_zar NUMERIC(12,2) DEFAULT 0,
                  plant_inspection_zar NUMERIC(12,2) DEFAULT 0,
                  portbuild_zar NUMERIC(12,2) DEFAULT 0,
                  davif_zar NUMERIC(12,2) DEFAULT 0,
                  agency_zar NUMERIC(12,2) DEFAULT 0,
                  clearing_charges_subtotal_zar NUMERIC(14,2) DEFAULT 0,
                  total_shipping_cost_zar NUMERIC(14,2) DEFAULT 0,
                  total_in_warehouse_cost_zar NUMERIC(14,2) DEFAULT 0,
                  all_in_warehouse_cost_per_kg_zar NUMERIC(12,4) DEFAULT 0,
                  status VARCHAR(50) DEFAULT 'draft',
                  notes TEXT,
                  created_by VARCHAR(255),
                  created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                  updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS exchange_rate_cache (
                  id SERIAL PRIMARY KEY,
                  currency_pair VARCHAR(10) NOT NULL UNIQUE,
                  rate NUMERIC(12,6) NOT NULL,
                  source VARCHAR(100),
                  fetched_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """,
                description="创建进口成本核算表",
            ),
            CreateIndexIfAbsent("idx_cost_estimates_shipment", "import_cost_estimates", ["shipment_id"]),
            CreateIndexIfAbsent("idx_cost_estimates_supplier", "import_cost_estimates", ["supplier_id"]),
            CreateIndexIfAbsent("idx_cost_estimates_date", "import_cost_estimates", ["costing_date"]),
            CreateIndexIfAbsent("idx_cost_estimates_status", "import_cost_estimates", ["status"]),
            CreateIndexIfAbsent("idx_exchange_rate_pair", "exchange_rate_cache", ["currency_pair"]),
        ),
        rollback=RunSQL(
            "DROP TABLE IF EXISTS exchange_rate_cache",
            "DROP TABLE IF EXISTS import_cost_estimates",
            description="删除进口成本核算表",
        ),
    ),
    MigrationDefinition(
        name="update-import-costing-schema",
        version="015",
        description="Update import cost estimates with new Local Charges and Destination Charges fields",
        depends_on=["add-import-costing-tables"],
        operation=Transactional(
            # 本地费用
            _money("import_cost_estimates", "local_cartage_zar"),
            _money("import_cost_estimates", "transport_to_warehouse_zar"),
            _money("import_cost_estimates", "storage_zar"),
            AddColumnIfAbsent("import_cost_estimates", "storage_days", Integer, server_default="0"),
            _money("import_cost_estimates", "outlying_depot_surcharge_zar"),
            _money("import_cost_estimates", "local_charges_subtotal_zar", 14),
            # 目的港费用
            _money("import_cost_estimates", "shipping_line_charges_zar"),
            _money("import_cost_estimates", "cargo_dues_zar"),
            _money("import_cost_estimates", "cto_fee_zar"),
            _money("import_cost_estimates", "port_health_inspection_zar"),
            _money("import_cost_estimates", "sars_inspection_zar"),
            _money("import_cost_estimates", "state_vet_fee_zar"),
            _money("import_cost_estimates", "inb_turn_in_zar"),
            # 关税
            _money("import_cost_estimates", "duties_zar"),
            _money("import_cost_estimates", "customs_vat_zar"),
            _money("import_cost_estimates", "customs_declaration_zar"),
            _money("import_cost_estimates", "agency_fee_zar"),
            AddColumnIfAbsent("import_cost_estimates", "agency_fee_percentage", Numeric(5, 2), server_default="3.5"),
            AddColumnIfAbsent("import_cost_estimates", "agency_fee_min", Numeric(12, 2), server_default="1187"),
            _money("import_cost_estimates", "customs_subtotal_zar", 14),
            description="更新进口成本核算字段",
        ),
    ),
]
