from alembic import op
import sqlalchemy as sa


revision = "0002_cash_automation"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cash_schedule_config",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), nullable=False, index=True),
        sa.Column("auto_open_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_close_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("open_hour", sa.Integer(), nullable=False, server_default="9"),
        sa.Column("open_minute", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("close_hour", sa.Integer(), nullable=False, server_default="18"),
        sa.Column("close_minute", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_days", sa.String(length=20), nullable=False, server_default="1,2,3,4,5,6,7"),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="America/Argentina/Buenos_Aires"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", name="uq_cash_schedule_config_tenant"),
    )
    op.create_table(
        "cash_registers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), nullable=False, index=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open", index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("initial_usd", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("initial_ars", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("initial_usdt", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("current_usd", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("current_ars", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("current_usdt", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("daily_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_expenses", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("daily_global_exchange_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("final_balance", sa.Numeric(12, 2), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("opened_by", sa.String(length=255), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_cash_registers_tenant_status", "cash_registers", ["tenant_id", "status"])
    op.create_table(
        "daily_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), nullable=False, index=True),
        sa.Column("cash_register_id", sa.Integer(), nullable=True, index=True),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("opening_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_income", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_expenses", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_debt_payments", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("net_profit", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("vendor_commissions", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("closing_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("efectivo_ars", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("efectivo_usd", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("transferencia_ars", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("transferencia_usd", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("transferencia_usdt", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("financiera_ars", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("financiera_usd", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_movements", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("exchange_rate_used", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("is_auto_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_generated_type", sa.String(length=20), nullable=True),
        sa.Column("report_data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cash_register_id"], ["cash_registers.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_daily_reports_tenant_date", "daily_reports", ["tenant_id", "report_date"])
    op.create_table(
        "cash_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), nullable=False, index=True),
        sa.Column("cash_register_id", sa.Integer(), nullable=True, index=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("subtype", sa.String(length=50), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="USD"),
        sa.Column("amount_usd", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cash_register_id"], ["cash_registers.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_cash_movements_created_at", "cash_movements", ["created_at"])
    op.create_table(
        "cash_auto_operations_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Integer(), nullable=False, index=True),
        sa.Column("operation_type", sa.String(length=20), nullable=False, index=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="success"),
        sa.Column("local_date", sa.Date(), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("executed_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("cash_register_id", sa.Integer(), nullable=True),
        sa.Column("report_id", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cash_register_id"], ["cash_registers.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["report_id"], ["daily_reports.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "ix_cash_auto_ops_dedup",
        "cash_auto_operations_log",
        ["tenant_id", "operation_type", "local_date"],
    )


def downgrade() -> None:
    op.drop_table("cash_auto_operations_log")
    op.drop_table("cash_movements")
    op.drop_table("daily_reports")
    op.drop_table("cash_registers")
    op.drop_table("cash_schedule_config")
