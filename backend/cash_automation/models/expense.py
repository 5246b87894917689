from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime

from cash_automation.models.tenant import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    category = Column(String(100), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    amount_usd = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(50), nullable=True)
    provider = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
