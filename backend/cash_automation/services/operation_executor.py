"""
Automatic open/close workflows.

Each workflow runs in its own session and never raises: the outcome is
written to the operation log as success, skipped or failed.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from cash_automation.core.errors import AggregationFailure, ExecutionFailure, PreconditionViolation
from cash_automation.core.timezone_utils import ensure_utc, to_local
from cash_automation.models.auto_operation_log import (
    CashAutoOperationLog,
    OPERATION_AUTO_CLOSE,
    OPERATION_AUTO_OPEN,
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
)
from cash_automation.services import cash_register_service
from cash_automation.services.operation_log import append_operation_log

logger = logging.getLogger(__name__)


def _commit(db: Session, entry: CashAutoOperationLog) -> CashAutoOperationLog:
    db.commit()
    # Loaded attributes stay readable once the session closes
    db.refresh(entry)
    return entry


class OperationExecutor:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def execute_auto_open(
        self,
        tenant_id: int,
        tz_name: str,
        now: datetime,
        scheduled_time: Optional[datetime] = None,
    ) -> Optional[CashAutoOperationLog]:
        """Open a zero-balance register unless one is already open."""
        now = ensure_utc(now)
        local_date = to_local(now, tz_name).date()
        logger.info("Executing auto-open for tenant %s", tenant_id)

        with self.session_factory() as db:
            try:
                with cash_register_service.tenant_lock(tenant_id):
                    current = cash_register_service.get_current_open_register(db, tenant_id)
                    if current is not None:
                        logger.warning("Cash register %s already open for tenant %s", current.id, tenant_id)
                        entry = append_operation_log(
                            db,
                            tenant_id,
                            OPERATION_AUTO_OPEN,
                            STATUS_SKIPPED,
                            local_date=local_date,
                            scheduled_time=scheduled_time,
                            executed_time=now,
                            cash_register_id=current.id,
                            notes="Cash register already open",
                        )
                        return _commit(db, entry)

                    register = cash_register_service.open_register(
                        db,
                        tenant_id,
                        register_date=local_date,
                        opened_at=now,
                    )
                    entry = append_operation_log(
                        db,
                        tenant_id,
                        OPERATION_AUTO_OPEN,
                        STATUS_SUCCESS,
                        local_date=local_date,
                        scheduled_time=scheduled_time,
                        executed_time=now,
                        cash_register_id=register.id,
                        notes="Cash register opened automatically",
                    )
                    entry = _commit(db, entry)
                logger.info("Auto-open completed for tenant %s (register %s)", tenant_id, entry.cash_register_id)
                return entry
            except PreconditionViolation as exc:
                db.rollback()
                logger.warning("Auto-open skipped for tenant %s: %s", tenant_id, exc)
                entry = append_operation_log(
                    db,
                    tenant_id,
                    OPERATION_AUTO_OPEN,
                    STATUS_SKIPPED,
                    local_date=local_date,
                    scheduled_time=scheduled_time,
                    executed_time=now,
                    notes=exc.message,
                )
                return _commit(db, entry)
            except ExecutionFailure as exc:
                db.rollback()
                logger.error("Auto-open failed for tenant %s: %s", tenant_id, exc.message)
                return self._record_failure(db, tenant_id, OPERATION_AUTO_OPEN, local_date, now, scheduled_time, exc)
            except Exception as exc:
                db.rollback()
                logger.exception("Error in auto-open for tenant %s", tenant_id)
                return self._record_failure(db, tenant_id, OPERATION_AUTO_OPEN, local_date, now, scheduled_time, exc)

    def execute_auto_close(
        self,
        tenant_id: int,
        tz_name: str,
        now: datetime,
        scheduled_time: Optional[datetime] = None,
    ) -> Optional[CashAutoOperationLog]:
        """
        Close the open register and produce its DailyReport.

        The report, the register closure and the success entry share one
        transaction. Any error rolls all of it back, leaving the register open
        for the next tick, and a single failed entry is written instead.
        """
        now = ensure_utc(now)
        report_date = to_local(now, tz_name).date()
        logger.info("Executing auto-close for tenant %s", tenant_id)

        with self.session_factory() as db:
            try:
                register = cash_register_service.get_current_open_register(db, tenant_id)
                if register is None:
                    logger.warning("No open cash register for tenant %s, skipping auto-close", tenant_id)
                    entry = append_operation_log(
                        db,
                        tenant_id,
                        OPERATION_AUTO_CLOSE,
                        STATUS_SKIPPED,
                        local_date=report_date,
                        scheduled_time=scheduled_time,
                        executed_time=now,
                        notes="No open cash register found - cannot close what is not open",
                    )
                    return _commit(db, entry)

                report = cash_register_service.close_with_report(
                    db,
                    register,
                    report_date=report_date,
                    tz_name=tz_name,
                    closed_at=now,
                    closed_by=None,
                    auto_generated=True,
                )
                entry = append_operation_log(
                    db,
                    tenant_id,
                    OPERATION_AUTO_CLOSE,
                    STATUS_SUCCESS,
                    local_date=report_date,
                    scheduled_time=scheduled_time,
                    executed_time=now,
                    cash_register_id=register.id,
                    report_id=report.id,
                    notes=f"Auto-closed with balance: {report.closing_balance}, report generated: {report.id}",
                )
                entry = _commit(db, entry)
                logger.info(
                    "Auto-close completed for tenant %s: register %s closed, report %s generated",
                    tenant_id,
                    entry.cash_register_id,
                    entry.report_id,
                )
                return entry
            except PreconditionViolation as exc:
                # The conditional close lost a race with a manual close
                db.rollback()
                logger.warning("Auto-close skipped for tenant %s: %s", tenant_id, exc)
                entry = append_operation_log(
                    db,
                    tenant_id,
                    OPERATION_AUTO_CLOSE,
                    STATUS_SKIPPED,
                    local_date=report_date,
                    scheduled_time=scheduled_time,
                    executed_time=now,
                    notes=f"Register closed by another operation: {exc.message}",
                )
                return _commit(db, entry)
            except (AggregationFailure, ExecutionFailure) as exc:
                db.rollback()
                logger.error("Auto-close failed for tenant %s: %s", tenant_id, exc.message)
                return self._record_failure(db, tenant_id, OPERATION_AUTO_CLOSE, report_date, now, scheduled_time, exc)
            except Exception as exc:
                db.rollback()
                logger.exception("Error in auto-close for tenant %s", tenant_id)
                return self._record_failure(db, tenant_id, OPERATION_AUTO_CLOSE, report_date, now, scheduled_time, exc)

    def _record_failure(self, db, tenant_id, operation_type, local_date, now, scheduled_time, exc):
        try:
            entry = append_operation_log(
                db,
                tenant_id,
                operation_type,
                STATUS_FAILED,
                local_date=local_date,
                scheduled_time=scheduled_time,
                executed_time=now,
                error_message=str(exc) or exc.__class__.__name__,
            )
            return _commit(db, entry)
        except Exception:
            db.rollback()
            logger.exception("Could not record failed %s for tenant %s", operation_type, tenant_id)
            return None
