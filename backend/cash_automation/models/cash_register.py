from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Numeric, ForeignKey, Index

from cash_automation.models.tenant import Base


REGISTER_OPEN = "open"
REGISTER_CLOSED = "closed"


class CashRegister(Base):
    __tablename__ = "cash_registers"
    __table_args__ = (
        Index("ix_cash_registers_tenant_status", "tenant_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=REGISTER_OPEN, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Saldos iniciales por moneda
    initial_usd = Column(Numeric(12, 2), nullable=False, default=0)
    initial_ars = Column(Numeric(14, 2), nullable=False, default=0)
    initial_usdt = Column(Numeric(12, 2), nullable=False, default=0)
    current_usd = Column(Numeric(12, 2), nullable=False, default=0)
    current_ars = Column(Numeric(14, 2), nullable=False, default=0)
    current_usdt = Column(Numeric(12, 2), nullable=False, default=0)
    daily_sales = Column(Numeric(12, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(12, 2), nullable=False, default=0)
    daily_global_exchange_rate = Column(Numeric(12, 2), nullable=False, default=0)

    final_balance = Column(Numeric(12, 2), nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    opened_by = Column(String(255), nullable=True)  # None = apertura automática
    closed_at = Column(DateTime(timezone=True), nullable=True)
    closed_by = Column(String(255), nullable=True)  # None = cierre automático
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    @property
    def is_open(self) -> bool:
        return self.status == REGISTER_OPEN

    @property
    def initial_balance(self):
        """Opening balance in USD, the reporting currency."""
        return self.initial_usd
