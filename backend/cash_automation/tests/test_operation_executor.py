from datetime import date, datetime
from decimal import Decimal

import pytz

from cash_automation.core.errors import AggregationFailure
from cash_automation.models.auto_operation_log import CashAutoOperationLog
from cash_automation.models.cash_register import CashRegister
from cash_automation.models.daily_report import DailyReport
from cash_automation.models.expense import Expense
from cash_automation.models.payment import OrderPayment
from cash_automation.services import cash_register_service, report_aggregator
from cash_automation.services.operation_executor import OperationExecutor

TZ = "America/Argentina/Buenos_Aires"


def utc(*args):
    return datetime(*args, tzinfo=pytz.utc)


def _open_manually(db, tenant_id, initial_usd=Decimal("0")):
    register = cash_register_service.open_register(
        db,
        tenant_id,
        register_date=date(2026, 10, 19),
        opened_at=utc(2026, 10, 19, 11),
        initial_usd=initial_usd,
        opened_by="cajero",
    )
    db.commit()
    return register


def test_auto_open_creates_zero_balance_register(db, session_factory, tenant):
    executor = OperationExecutor(session_factory)
    scheduled = utc(2026, 10, 19, 12)

    entry = executor.execute_auto_open(tenant.id, TZ, utc(2026, 10, 19, 12, 0, 30), scheduled)

    assert entry.status == "success"
    assert entry.local_date == date(2026, 10, 19)
    register = db.get(CashRegister, entry.cash_register_id)
    assert register.is_open
    assert register.initial_usd == Decimal("0.00")
    assert register.current_usd == Decimal("0.00")
    assert register.opened_by is None
    assert register.daily_global_exchange_rate == Decimal("1200.00")


def test_auto_open_skips_when_already_open(db, session_factory, tenant):
    register = _open_manually(db, tenant.id)

    entry = OperationExecutor(session_factory).execute_auto_open(tenant.id, TZ, utc(2026, 10, 19, 12, 0, 30))

    assert entry.status == "skipped"
    assert entry.cash_register_id == register.id
    assert db.query(CashRegister).filter(CashRegister.tenant_id == tenant.id).count() == 1


def test_auto_close_skips_without_open_register(db, session_factory, tenant):
    entry = OperationExecutor(session_factory).execute_auto_close(tenant.id, TZ, utc(2026, 10, 19, 21, 0, 10))

    assert entry.status == "skipped"
    assert "No open cash register" in entry.notes
    assert db.query(DailyReport).count() == 0


def test_open_then_close_end_to_end(db, session_factory, tenant):
    executor = OperationExecutor(session_factory)
    opened = executor.execute_auto_open(tenant.id, TZ, utc(2026, 10, 19, 12, 0, 30))
    assert opened.status == "success"

    db.add_all([
        OrderPayment(tenant_id=tenant.id, payment_method="efectivo_usd", amount=Decimal("250"),
                     amount_usd=Decimal("250"), created_at=utc(2026, 10, 19, 14)),
        Expense(tenant_id=tenant.id, description="Cafe", amount=Decimal("20"), amount_usd=Decimal("20"),
                created_at=utc(2026, 10, 19, 15)),
    ])
    db.commit()

    closed = executor.execute_auto_close(tenant.id, TZ, utc(2026, 10, 19, 21, 0, 10))

    assert closed.status == "success"
    assert closed.cash_register_id == opened.cash_register_id
    db.expire_all()
    register = db.get(CashRegister, closed.cash_register_id)
    report = db.get(DailyReport, closed.report_id)
    assert register.status == "closed"
    assert register.closed_by is None
    assert register.daily_sales == Decimal("250.00")
    assert report.net_profit == Decimal("230.00")
    assert report.closing_balance == Decimal("230.00")
    assert register.final_balance == report.closing_balance
    assert report.is_auto_generated
    assert report.auto_generated_type == "auto_close"
    assert report.report_date == date(2026, 10, 19)
    assert report.report_data["metadata"]["report_type"] == "automatic_daily_close"


def test_closing_balance_includes_opening_balance(db, session_factory, tenant):
    _open_manually(db, tenant.id, initial_usd=Decimal("100"))
    db.add(OrderPayment(tenant_id=tenant.id, payment_method="efectivo_usd", amount=Decimal("50"),
                        amount_usd=Decimal("50"), created_at=utc(2026, 10, 19, 14)))
    db.commit()

    entry = OperationExecutor(session_factory).execute_auto_close(tenant.id, TZ, utc(2026, 10, 19, 21, 1))

    report = db.get(DailyReport, entry.report_id)
    assert report.opening_balance == Decimal("100.00")
    assert report.closing_balance == Decimal("150.00")


def test_failed_close_leaves_register_open(db, session_factory, tenant, monkeypatch):
    register = _open_manually(db, tenant.id)

    def broken(db, tenant_id, *args, **kwargs):
        raise AggregationFailure("orders unavailable", tenant_id=tenant_id)

    monkeypatch.setattr(report_aggregator, "aggregate", broken)
    entry = OperationExecutor(session_factory).execute_auto_close(tenant.id, TZ, utc(2026, 10, 19, 21, 0, 10))

    assert entry.status == "failed"
    assert "orders unavailable" in entry.error_message
    db.expire_all()
    assert db.get(CashRegister, register.id).status == "open"
    assert db.query(DailyReport).count() == 0
    assert db.query(CashAutoOperationLog).count() == 1


def test_close_loses_race_to_manual_close(db, session_factory, tenant, monkeypatch):
    register = _open_manually(db, tenant.id)
    original = cash_register_service.close_register

    def closed_meanwhile(session, register_id, *args, **kwargs):
        # Someone else closes the register between the read and the conditional update
        session.query(CashRegister).filter(CashRegister.id == register_id).update(
            {CashRegister.status: "closed"}, synchronize_session=False
        )
        return original(session, register_id, *args, **kwargs)

    monkeypatch.setattr(cash_register_service, "close_register", closed_meanwhile)
    entry = OperationExecutor(session_factory).execute_auto_close(tenant.id, TZ, utc(2026, 10, 19, 21, 0, 10))

    assert entry.status == "skipped"
    assert db.query(DailyReport).filter(DailyReport.cash_register_id == register.id).count() == 0
