from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Numeric, ForeignKey, Index, JSON

from cash_automation.models.tenant import Base


class DailyReport(Base):
    """Immutable snapshot of one register closing (automatic or manual)."""

    __tablename__ = "daily_reports"
    __table_args__ = (
        Index("ix_daily_reports_tenant_date", "tenant_id", "report_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    cash_register_id = Column(Integer, ForeignKey("cash_registers.id", ondelete="SET NULL"), nullable=True, index=True)
    report_date = Column(Date, nullable=False)

    opening_balance = Column(Numeric(12, 2), nullable=False, default=0)
    total_income = Column(Numeric(12, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(12, 2), nullable=False, default=0)
    total_debt_payments = Column(Numeric(12, 2), nullable=False, default=0)
    net_profit = Column(Numeric(12, 2), nullable=False, default=0)
    vendor_commissions = Column(Numeric(12, 2), nullable=False, default=0)
    closing_balance = Column(Numeric(12, 2), nullable=False, default=0)

    # Totales por método y moneda (moneda original del pago)
    efectivo_ars = Column(Numeric(14, 2), nullable=False, default=0)
    efectivo_usd = Column(Numeric(12, 2), nullable=False, default=0)
    transferencia_ars = Column(Numeric(14, 2), nullable=False, default=0)
    transferencia_usd = Column(Numeric(12, 2), nullable=False, default=0)
    transferencia_usdt = Column(Numeric(12, 2), nullable=False, default=0)
    financiera_ars = Column(Numeric(14, 2), nullable=False, default=0)
    financiera_usd = Column(Numeric(12, 2), nullable=False, default=0)

    total_movements = Column(Integer, nullable=False, default=0)
    exchange_rate_used = Column(Numeric(12, 2), nullable=False, default=0)
    is_auto_generated = Column(Boolean, nullable=False, default=False)
    auto_generated_type = Column(String(20), nullable=True)  # "auto_close" | "manual_close"
    report_data = Column(JSON, nullable=False)  # Payload completo del agregador
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
