from datetime import datetime

import pytz

from cash_automation.core.errors import AggregationFailure
from cash_automation.models.auto_operation_log import CashAutoOperationLog
from cash_automation.models.cash_register import CashRegister
from cash_automation.services import report_aggregator
from cash_automation.services.automation_service import CashAutomationService
from cash_automation.services.operation_log import query_operation_log


def utc(*args):
    return datetime(*args, tzinfo=pytz.utc)


def _entries(db, tenant_id, operation_type):
    return (
        db.query(CashAutoOperationLog)
        .filter(CashAutoOperationLog.tenant_id == tenant_id, CashAutoOperationLog.operation_type == operation_type)
        .all()
    )


def test_two_ticks_in_window_open_once(db, tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_open_enabled=True)

    first = service.tick(utc(2026, 10, 19, 12, 0, 30))
    second = service.tick(utc(2026, 10, 19, 12, 1, 30))

    assert first["executed"] == [{"tenant_id": tenant.id, "operation": "auto_open"}]
    assert second["executed"] == []
    assert len(_entries(db, tenant.id, "auto_open")) == 1
    assert db.query(CashRegister).filter(CashRegister.tenant_id == tenant.id).count() == 1


def test_skipped_operation_is_not_retried(db, tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_close_enabled=True)

    service.tick(utc(2026, 10, 19, 21, 0, 10))
    service.tick(utc(2026, 10, 19, 21, 2))

    [entry] = _entries(db, tenant.id, "auto_close")
    assert entry.status == "skipped"


def test_failed_close_is_retried_next_tick(db, tenant, configure_schedule, service, monkeypatch):
    configure_schedule(tenant.id, auto_open_enabled=True, auto_close_enabled=True)
    service.tick(utc(2026, 10, 19, 12, 0, 30))

    original = report_aggregator.aggregate

    def broken(db, tenant_id, *args, **kwargs):
        raise AggregationFailure("temporarily unavailable", tenant_id=tenant_id)

    monkeypatch.setattr(report_aggregator, "aggregate", broken)
    service.tick(utc(2026, 10, 19, 21, 0, 10))
    monkeypatch.setattr(report_aggregator, "aggregate", original)
    service.tick(utc(2026, 10, 19, 21, 1, 10))

    statuses = [entry.status for entry in query_operation_log(db, tenant.id) if entry.operation_type == "auto_close"]
    assert statuses == ["success", "failed"]
    assert db.query(CashRegister).filter(CashRegister.status == "open").count() == 0


def test_tick_outside_window_does_nothing(db, tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_open_enabled=True, auto_close_enabled=True)
    summary = service.tick(utc(2026, 10, 19, 15, 0))
    assert summary["tenants"] == 1
    assert summary["executed"] == []
    assert db.query(CashAutoOperationLog).count() == 0


def test_tenants_without_automation_are_ignored(db, tenant, make_tenant, configure_schedule, service):
    configure_schedule(tenant.id)  # both operations disabled
    make_tenant("sin-config")
    summary = service.tick(utc(2026, 10, 19, 12, 0, 30))
    assert summary["tenants"] == 0
    assert db.query(CashRegister).count() == 0


def test_failure_in_one_tenant_does_not_stop_others(db, session_factory, make_tenant, configure_schedule):
    broken_tenant = make_tenant("roto")
    healthy_tenant = make_tenant("sano")
    for t in (broken_tenant, healthy_tenant):
        configure_schedule(t.id, auto_open_enabled=True)

    class FlakyExecutor:
        def __init__(self):
            self.opened = []

        def execute_auto_open(self, tenant_id, tz_name, now, scheduled_time=None):
            if tenant_id == broken_tenant.id:
                raise RuntimeError("boom")
            self.opened.append(tenant_id)

        def execute_auto_close(self, tenant_id, tz_name, now, scheduled_time=None):
            raise AssertionError("close is not due")

    executor = FlakyExecutor()
    service = CashAutomationService(session_factory, executor=executor)
    summary = service.tick(utc(2026, 10, 19, 12, 0, 30))

    assert summary["errors"] == 1
    assert executor.opened == [healthy_tenant.id]


def test_each_tenant_uses_its_own_timezone(db, make_tenant, configure_schedule, service):
    buenos_aires = make_tenant("ba")
    madrid = make_tenant("madrid")
    configure_schedule(buenos_aires.id, auto_open_enabled=True)
    configure_schedule(madrid.id, auto_open_enabled=True, timezone="Europe/Madrid")

    # 12:00 UTC is 09:00 in Buenos Aires and 14:00 in Madrid
    summary = service.tick(utc(2026, 10, 19, 12, 0, 30))

    assert summary["executed"] == [{"tenant_id": buenos_aires.id, "operation": "auto_open"}]


def test_scheduled_time_is_recorded(db, tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_open_enabled=True)
    service.tick(utc(2026, 10, 19, 12, 2))

    [entry] = _entries(db, tenant.id, "auto_open")
    scheduled = entry.scheduled_time.replace(tzinfo=pytz.utc) if entry.scheduled_time.tzinfo is None else entry.scheduled_time
    assert scheduled == utc(2026, 10, 19, 12, 0)


def test_start_and_stop_are_idempotent(service):
    assert not service.is_running
    assert service.start() is True
    assert service.start() is False
    assert service.is_running
    assert service.get_status()["is_running"] is True

    assert service.stop() is True
    assert service.stop() is False
    status = service.get_status()
    assert status["is_running"] is False
    assert status["uptime"] == "Stopped"


def test_status_reports_last_tick(tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_open_enabled=True)
    service.tick(utc(2026, 10, 19, 12, 0, 30))
    status = service.get_status()
    assert status["last_check"] == "2026-10-19T12:00:30+00:00"
    assert status["last_tick"]["executed"] == [{"tenant_id": tenant.id, "operation": "auto_open"}]


def test_process_tenant_without_config(tenant, service):
    assert service.process_tenant(tenant.id, utc(2026, 10, 19, 12, 0, 30)) == []


def test_tick_is_skipped_while_previous_tick_runs(db, tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_open_enabled=True)

    service._tick_lock.acquire()
    try:
        assert service.tick(utc(2026, 10, 19, 12, 0, 30)) is None
    finally:
        service._tick_lock.release()
    assert db.query(CashAutoOperationLog).count() == 0

    summary = service.tick(utc(2026, 10, 19, 12, 1, 30))
    assert summary["executed"] == [{"tenant_id": tenant.id, "operation": "auto_open"}]
