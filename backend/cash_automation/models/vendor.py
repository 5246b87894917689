from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Boolean, DateTime

from cash_automation.models.tenant import Base


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    commission_percentage = Column(Numeric(5, 2), nullable=True)  # None -> comisión por defecto
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
