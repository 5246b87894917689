from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Index, Text

from cash_automation.models.tenant import Base


OPERATION_AUTO_OPEN = "auto_open"
OPERATION_AUTO_CLOSE = "auto_close"

STATUS_SUCCESS = "success"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


class CashAutoOperationLog(Base):
    """Append-only audit row, one per automatic execution attempt."""

    __tablename__ = "cash_auto_operations_log"
    __table_args__ = (
        Index("ix_cash_auto_ops_dedup", "tenant_id", "operation_type", "local_date"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    operation_type = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=STATUS_SUCCESS)
    # Calendar date in the tenant's timezone when the attempt ran
    local_date = Column(Date, nullable=False)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)
    executed_time = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    cash_register_id = Column(Integer, ForeignKey("cash_registers.id", ondelete="SET NULL"), nullable=True)
    report_id = Column(Integer, ForeignKey("daily_reports.id", ondelete="SET NULL"), nullable=True)
    error_message = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
