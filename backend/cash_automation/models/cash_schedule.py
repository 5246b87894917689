from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from cash_automation.models.tenant import Base


ALL_DAYS = "1,2,3,4,5,6,7"


class CashScheduleConfig(Base):
    __tablename__ = "cash_schedule_config"
    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_cash_schedule_config_tenant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    auto_open_enabled = Column(Boolean, nullable=False, default=False)
    auto_close_enabled = Column(Boolean, nullable=False, default=False)
    open_hour = Column(Integer, nullable=False, default=9)
    open_minute = Column(Integer, nullable=False, default=0)
    close_hour = Column(Integer, nullable=False, default=18)
    close_minute = Column(Integer, nullable=False, default=0)
    # 1=Lunes .. 7=Domingo, separados por coma
    active_days = Column(String(20), nullable=False, default=ALL_DAYS)
    timezone = Column(String(64), nullable=False, default="America/Argentina/Buenos_Aires")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    tenant = relationship("Tenant")
