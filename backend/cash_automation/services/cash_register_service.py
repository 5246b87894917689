"""
Register state transitions shared by the automatic workflows and the manual endpoints.

Opening runs inside a per-tenant mutual-exclusion section; closing is a
conditional update keyed on the expected prior state (status == "open").
"""
import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cash_automation.core.config import settings
from cash_automation.core.errors import ExecutionFailure, PreconditionViolation, RegisterStateConflict
from cash_automation.core.serialization_helpers import quantize_money, to_decimal
from cash_automation.core.timezone_utils import ensure_utc
from cash_automation.models.cash_register import CashRegister, REGISTER_CLOSED, REGISTER_OPEN
from cash_automation.models.daily_report import DailyReport
from cash_automation.services import report_aggregator

_locks_guard = threading.Lock()
_tenant_locks: Dict[int, threading.Lock] = {}


@contextmanager
def tenant_lock(tenant_id: int):
    """Serialize open/close transitions for one tenant within this process."""
    with _locks_guard:
        lock = _tenant_locks.setdefault(tenant_id, threading.Lock())
    with lock:
        yield


def get_current_open_register(db: Session, tenant_id: int) -> Optional[CashRegister]:
    return (
        db.query(CashRegister)
        .filter(CashRegister.tenant_id == tenant_id, CashRegister.status == REGISTER_OPEN)
        .order_by(CashRegister.opened_at.desc(), CashRegister.id.desc())
        .first()
    )


def create_register(db: Session, tenant_id: int, **fields) -> CashRegister:
    register = CashRegister(tenant_id=tenant_id, status=REGISTER_OPEN, is_active=True, **fields)
    db.add(register)
    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise ExecutionFailure(f"Could not create cash register: {exc}", tenant_id=tenant_id) from exc
    return register


def open_register(
    db: Session,
    tenant_id: int,
    register_date: date,
    opened_at: datetime,
    initial_usd: Decimal = Decimal("0"),
    initial_ars: Decimal = Decimal("0"),
    initial_usdt: Decimal = Decimal("0"),
    exchange_rate: Optional[Decimal] = None,
    opened_by: Optional[str] = None,
) -> CashRegister:
    """
    Open a new register for the tenant. Current balances start at the initial ones.
    Must run inside ``tenant_lock(tenant_id)``; the caller commits.

    Raises:
        PreconditionViolation: If the tenant already has an open register
    """
    current = get_current_open_register(db, tenant_id)
    if current is not None:
        raise PreconditionViolation(f"Cash register {current.id} already open", tenant_id=tenant_id)

    return create_register(
        db,
        tenant_id,
        date=register_date,
        initial_usd=quantize_money(initial_usd),
        initial_ars=quantize_money(initial_ars),
        initial_usdt=quantize_money(initial_usdt),
        current_usd=quantize_money(initial_usd),
        current_ars=quantize_money(initial_ars),
        current_usdt=quantize_money(initial_usdt),
        daily_sales=Decimal("0.00"),
        total_expenses=Decimal("0.00"),
        daily_global_exchange_rate=quantize_money(
            exchange_rate if exchange_rate is not None else settings.default_exchange_rate
        ),
        opened_at=ensure_utc(opened_at),
        opened_by=opened_by,
    )


def close_register(
    db: Session,
    register_id: int,
    final_balance: Decimal,
    closed_at: datetime,
    closed_by: Optional[str] = None,
    daily_sales: Optional[Decimal] = None,
    total_expenses: Optional[Decimal] = None,
) -> None:
    """
    Transition an open register to closed with a conditional update.

    Raises:
        RegisterStateConflict: If the register was no longer open
        ExecutionFailure: If the update itself fails
    """
    values = {
        CashRegister.status: REGISTER_CLOSED,
        CashRegister.final_balance: quantize_money(final_balance),
        CashRegister.closed_at: ensure_utc(closed_at),
        CashRegister.closed_by: closed_by,
        CashRegister.updated_at: ensure_utc(closed_at),
    }
    if daily_sales is not None:
        values[CashRegister.daily_sales] = quantize_money(daily_sales)
    if total_expenses is not None:
        values[CashRegister.total_expenses] = quantize_money(total_expenses)

    try:
        updated = (
            db.query(CashRegister)
            .filter(CashRegister.id == register_id, CashRegister.status == REGISTER_OPEN)
            .update(values, synchronize_session="fetch")
        )
    except SQLAlchemyError as exc:
        raise ExecutionFailure(f"Could not close cash register {register_id}: {exc}") from exc
    if updated == 0:
        raise RegisterStateConflict(f"Cash register {register_id} is no longer open")


def create_daily_report(db: Session, tenant_id: int, **fields) -> DailyReport:
    report = DailyReport(tenant_id=tenant_id, **fields)
    db.add(report)
    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise ExecutionFailure(f"Could not save daily report: {exc}", tenant_id=tenant_id) from exc
    return report


def close_with_report(
    db: Session,
    register: CashRegister,
    report_date: date,
    tz_name: str,
    closed_at: datetime,
    closed_by: Optional[str] = None,
    auto_generated: bool = True,
) -> DailyReport:
    """
    Aggregate the day, persist the DailyReport and close ``register``.
    Nothing is committed here: the caller commits or rolls back the whole unit.

    Raises:
        AggregationFailure: If the report data cannot be fetched
        ExecutionFailure: If the report or the closure cannot be written
        RegisterStateConflict: If the register was closed concurrently
    """
    payload = report_aggregator.aggregate(
        db,
        register.tenant_id,
        report_date,
        tz_name,
        report_type="automatic_daily_close" if auto_generated else "manual_daily_close",
        generated_at=closed_at,
    )

    opening_balance = quantize_money(register.initial_balance)
    closing_balance = quantize_money(opening_balance + payload.net_profit)
    exchange_rate = register.daily_global_exchange_rate
    if not to_decimal(exchange_rate):
        exchange_rate = settings.default_exchange_rate

    report = create_daily_report(
        db,
        register.tenant_id,
        cash_register_id=register.id,
        report_date=report_date,
        opening_balance=opening_balance,
        total_income=payload.total_income,
        total_expenses=payload.total_expenses,
        total_debt_payments=payload.total_debt_payments,
        net_profit=payload.net_profit,
        vendor_commissions=payload.vendor_commissions,
        closing_balance=closing_balance,
        total_movements=payload.movement_count,
        exchange_rate_used=quantize_money(exchange_rate),
        is_auto_generated=auto_generated,
        auto_generated_type="auto_close" if auto_generated else "manual_close",
        report_data=payload.data,
        **payload.currency_totals,
    )

    close_register(
        db,
        register.id,
        final_balance=closing_balance,
        closed_at=closed_at,
        closed_by=closed_by,
        daily_sales=payload.total_income,
        total_expenses=payload.total_expenses,
    )
    return report
