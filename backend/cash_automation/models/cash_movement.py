from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime

from cash_automation.models.tenant import Base


class CashMovement(Base):
    __tablename__ = "cash_movements"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    cash_register_id = Column(Integer, ForeignKey("cash_registers.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(String(20), nullable=False)  # "ingreso" | "egreso"
    subtype = Column(String(50), nullable=True)  # "venta", "gasto", "pago_deuda", ...
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USD")
    amount_usd = Column(Numeric(12, 2), nullable=False, default=0)
    description = Column(String(500), nullable=True)
    vendor_name = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
