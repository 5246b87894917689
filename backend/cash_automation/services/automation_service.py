"""
Periodic driver for automatic register open/close.

A BackgroundScheduler fires ``tick`` every ``poll_seconds``. Each tick walks
the tenants with automation enabled, asks the evaluator whether open/close is
due and hands due operations to the executor at most once per
(tenant, operation, local day).
"""
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from cash_automation.core.errors import ConfigurationMissing
from cash_automation.core.serialization_helpers import serialize_datetime
from cash_automation.core.timezone_utils import ensure_utc, localize, to_local, utc_now
from cash_automation.services.operation_executor import OperationExecutor
from cash_automation.services.operation_log import already_handled
from cash_automation.services.schedule_evaluator import (
    DEFAULT_WINDOW_MINUTES,
    OPERATION_OPEN,
    OPERATIONS,
    ScheduleSpec,
    should_execute,
)
from cash_automation.services.schedule_store import list_automated_tenant_ids, require_schedule_config

logger = logging.getLogger(__name__)

TICK_JOB_ID = "cash_automation_tick"


class CashAutomationService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        poll_seconds: int = 60,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
        executor: Optional[OperationExecutor] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.poll_seconds = poll_seconds
        self.window_minutes = window_minutes
        self.executor = executor or OperationExecutor(session_factory)
        self.clock = clock

        self._scheduler: Optional[BackgroundScheduler] = None
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self.started_at: Optional[datetime] = None
        self.last_check: Optional[datetime] = None
        self.last_tick: Dict[str, Any] = {}

    # Lifecycle

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> bool:
        """Start ticking. Returns False when the service was already running."""
        with self._state_lock:
            if self.is_running:
                logger.info("Cash automation service already running")
                return False

            logger.info("Starting cash automation service (every %ss)", self.poll_seconds)
            scheduler = BackgroundScheduler(daemon=True, timezone=pytz.utc)
            scheduler.add_job(
                func=self.tick,
                trigger=IntervalTrigger(seconds=self.poll_seconds),
                id=TICK_JOB_ID,
                name="Cash register automation tick",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            scheduler.start()
            self._scheduler = scheduler
            self.started_at = self.clock()
            logger.info("Cash automation service started")
            return True

    def stop(self) -> bool:
        """
        Stop scheduling new ticks. A tick already in progress runs to completion.
        Returns False when the service was not running.
        """
        with self._state_lock:
            if not self.is_running:
                self._scheduler = None
                return False
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self.started_at = None
            logger.info("Cash automation service stopped")
            return True

    def get_status(self) -> Dict[str, Any]:
        running = self.is_running
        return {
            "is_running": running,
            "uptime": "Active" if running else "Stopped",
            "started_at": serialize_datetime(self.started_at),
            "last_check": serialize_datetime(self.last_check),
            "poll_seconds": self.poll_seconds,
            "window_minutes": self.window_minutes,
            "last_tick": self.last_tick,
        }

    # Evaluation

    def tick(self, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """
        Evaluate every automated tenant once. Returns a summary, or None when
        the previous tick is still running.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous cash automation tick still running, skipping")
            return None
        try:
            now = ensure_utc(now or self.clock())
            self.last_check = now
            summary = {"checked_at": serialize_datetime(now), "tenants": 0, "executed": [], "errors": 0}

            try:
                with self.session_factory() as db:
                    tenant_ids = list_automated_tenant_ids(db)
            except Exception:
                logger.exception("Error loading tenants for scheduled operations")
                summary["errors"] += 1
                self.last_tick = summary
                return summary

            summary["tenants"] = len(tenant_ids)
            for tenant_id in tenant_ids:
                try:
                    for operation in self.process_tenant(tenant_id, now):
                        summary["executed"].append({"tenant_id": tenant_id, "operation": operation})
                except Exception:
                    logger.exception("Error processing scheduled operations for tenant %s", tenant_id)
                    summary["errors"] += 1

            self.last_tick = summary
            return summary
        finally:
            self._tick_lock.release()

    def process_tenant(self, tenant_id: int, now: datetime) -> List[str]:
        """Run the due, not yet handled operations for one tenant. Returns their types."""
        with self.session_factory() as db:
            try:
                spec = ScheduleSpec.from_config(require_schedule_config(db, tenant_id))
            except ConfigurationMissing:
                # Config removed since the tenant list was loaded
                return []
            except ValueError as exc:
                logger.warning("Invalid schedule for tenant %s: %s", tenant_id, exc)
                return []

            local_date = to_local(now, spec.timezone).date()
            due = []
            for operation in OPERATIONS:
                if not should_execute(spec, operation, now, self.window_minutes):
                    continue
                operation_type = f"auto_{operation}"
                if already_handled(db, tenant_id, operation_type, local_date):
                    logger.debug("%s already handled for tenant %s on %s", operation_type, tenant_id, local_date)
                    continue
                due.append(operation)

        executed = []
        for operation in due:
            scheduled_time = localize(local_date, spec.scheduled_time(operation), spec.timezone)
            logger.info("Should execute auto %s for tenant %s (scheduled %s)", operation, tenant_id, scheduled_time)
            if operation == OPERATION_OPEN:
                self.executor.execute_auto_open(tenant_id, spec.timezone, now, scheduled_time)
            else:
                self.executor.execute_auto_close(tenant_id, spec.timezone, now, scheduled_time)
            executed.append(f"auto_{operation}")
        return executed
