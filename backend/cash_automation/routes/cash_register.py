from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from cash_automation.core.config import settings
from cash_automation.core.database import get_db
from cash_automation.core.deps import get_tenant
from cash_automation.core.errors import AggregationFailure, ExecutionFailure, PreconditionViolation
from cash_automation.core.serialization_helpers import serialize_datetime, serialize_decimal
from cash_automation.core.timezone_utils import to_local, utc_now
from cash_automation.models.cash_register import CashRegister
from cash_automation.models.tenant import Tenant
from cash_automation.services import cash_register_service
from cash_automation.services.schedule_store import get_schedule_config

router = APIRouter()


class OpenRegisterIn(BaseModel):
    initial_usd: Decimal = Field(Decimal("0"), ge=0)
    initial_ars: Decimal = Field(Decimal("0"), ge=0)
    initial_usdt: Decimal = Field(Decimal("0"), ge=0)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    opened_by: str


class CloseRegisterIn(BaseModel):
    closed_by: str


def _register_out(register: CashRegister) -> dict:
    return {
        "id": register.id,
        "date": register.date.isoformat(),
        "status": register.status,
        "is_open": register.is_open,
        "initial_usd": serialize_decimal(register.initial_usd),
        "initial_ars": serialize_decimal(register.initial_ars),
        "initial_usdt": serialize_decimal(register.initial_usdt),
        "current_usd": serialize_decimal(register.current_usd),
        "current_ars": serialize_decimal(register.current_ars),
        "current_usdt": serialize_decimal(register.current_usdt),
        "daily_sales": serialize_decimal(register.daily_sales),
        "total_expenses": serialize_decimal(register.total_expenses),
        "daily_global_exchange_rate": serialize_decimal(register.daily_global_exchange_rate),
        "final_balance": serialize_decimal(register.final_balance),
        "opened_at": serialize_datetime(register.opened_at),
        "opened_by": register.opened_by,
        "closed_at": serialize_datetime(register.closed_at),
        "closed_by": register.closed_by,
    }


def _tenant_timezone(db: Session, tenant: Tenant) -> str:
    config = get_schedule_config(db, tenant.id)
    return config.timezone if config else settings.default_timezone


@router.get("/current")
def get_current_register(db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    register = cash_register_service.get_current_open_register(db, tenant.id)
    if not register:
        raise HTTPException(status_code=404, detail="No hay caja abierta")
    return _register_out(register)


@router.post("/open")
def open_register(data: OpenRegisterIn, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    """Apertura manual de caja. Solo puede haber una caja abierta por tenant."""
    now = utc_now()
    local_now = to_local(now, _tenant_timezone(db, tenant))
    try:
        with cash_register_service.tenant_lock(tenant.id):
            register = cash_register_service.open_register(
                db,
                tenant.id,
                register_date=local_now.date(),
                opened_at=now,
                initial_usd=data.initial_usd,
                initial_ars=data.initial_ars,
                initial_usdt=data.initial_usdt,
                exchange_rate=data.exchange_rate,
                opened_by=data.opened_by,
            )
            db.commit()
    except PreconditionViolation as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=exc.message)
    except ExecutionFailure as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail=exc.message)
    db.refresh(register)
    return _register_out(register)


@router.post("/close")
def close_register(data: CloseRegisterIn, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    """
    Cierre manual: genera el reporte del día y cierra la caja en una sola transacción.
    """
    tz_name = _tenant_timezone(db, tenant)
    now = utc_now()
    register = cash_register_service.get_current_open_register(db, tenant.id)
    if not register:
        raise HTTPException(status_code=409, detail="No hay caja abierta para cerrar")

    try:
        report = cash_register_service.close_with_report(
            db,
            register,
            report_date=to_local(now, tz_name).date(),
            tz_name=tz_name,
            closed_at=now,
            closed_by=data.closed_by,
            auto_generated=False,
        )
        db.commit()
    except PreconditionViolation as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=exc.message)
    except (AggregationFailure, ExecutionFailure) as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail=exc.message)

    db.refresh(register)
    return {"status": "ok", "register": _register_out(register), "report_id": report.id}
