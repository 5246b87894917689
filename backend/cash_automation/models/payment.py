from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime

from cash_automation.models.tenant import Base


class OrderPayment(Base):
    __tablename__ = "order_payments"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    # e.g. efectivo_ars, efectivo_usd, transferencia_usdt, financiera_usd
    payment_method = Column(String(50), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False, default=0)  # Moneda original
    amount_usd = Column(Numeric(12, 2), nullable=False, default=0)
    exchange_rate = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
