from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from cash_automation.core.timezone_utils import ensure_utc
from cash_automation.models.auto_operation_log import (
    CashAutoOperationLog,
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
)

VALID_STATUSES = {STATUS_SUCCESS, STATUS_SKIPPED, STATUS_FAILED}


def append_operation_log(
    db: Session,
    tenant_id: int,
    operation_type: str,
    status: str,
    local_date: date,
    scheduled_time: Optional[datetime] = None,
    executed_time: Optional[datetime] = None,
    cash_register_id: Optional[int] = None,
    report_id: Optional[int] = None,
    error_message: Optional[str] = None,
    notes: Optional[str] = None,
) -> CashAutoOperationLog:
    """Add one immutable log entry to the session. The caller commits."""
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid operation status: {status}")
    entry = CashAutoOperationLog(
        tenant_id=tenant_id,
        operation_type=operation_type,
        status=status,
        local_date=local_date,
        scheduled_time=ensure_utc(scheduled_time),
        cash_register_id=cash_register_id,
        report_id=report_id,
        error_message=error_message,
        notes=notes,
    )
    if executed_time is not None:
        entry.executed_time = ensure_utc(executed_time)
    db.add(entry)
    db.flush()
    return entry


def query_operation_log(db: Session, tenant_id: int, limit: int = 50) -> List[CashAutoOperationLog]:
    """Most recent entries first."""
    return (
        db.query(CashAutoOperationLog)
        .filter(CashAutoOperationLog.tenant_id == tenant_id)
        .order_by(CashAutoOperationLog.executed_time.desc(), CashAutoOperationLog.id.desc())
        .limit(limit)
        .all()
    )


def already_handled(db: Session, tenant_id: int, operation_type: str, local_date: date) -> bool:
    """
    True when a success or skipped entry exists for the dedup key
    (tenant, operation, local day). Failed attempts do not count so the
    next tick retries them.
    """
    return (
        db.query(CashAutoOperationLog.id)
        .filter(
            CashAutoOperationLog.tenant_id == tenant_id,
            CashAutoOperationLog.operation_type == operation_type,
            CashAutoOperationLog.local_date == local_date,
            CashAutoOperationLog.status != STATUS_FAILED,
        )
        .first()
        is not None
    )
