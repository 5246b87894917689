from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from cash_automation.core.config import settings
from cash_automation.core.database import get_db
from cash_automation.core.deps import get_automation_service, get_tenant
from cash_automation.core.serialization_helpers import serialize_datetime
from cash_automation.core.timezone_utils import utc_now
from cash_automation.models.cash_schedule import CashScheduleConfig
from cash_automation.models.tenant import Tenant
from cash_automation.services.automation_service import CashAutomationService
from cash_automation.services.operation_log import query_operation_log
from cash_automation.services.schedule_evaluator import next_occurrences, parse_active_days
from cash_automation.services.schedule_store import get_schedule_config, upsert_schedule_config

router = APIRouter()


class ScheduleConfigIn(BaseModel):
    auto_open_enabled: bool = False
    auto_close_enabled: bool = False
    open_hour: int = Field(9, ge=0, le=23)
    open_minute: int = Field(0, ge=0, le=59)
    close_hour: int = Field(18, ge=0, le=23)
    close_minute: int = Field(0, ge=0, le=59)
    active_days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5, 6, 7])  # 1=Lunes .. 7=Domingo
    timezone: Optional[str] = None

    @field_validator("active_days")
    @classmethod
    def _check_days(cls, value: List[int]) -> List[int]:
        invalid = [day for day in value if not 1 <= day <= 7]
        if invalid:
            raise ValueError(f"active_days must be between 1 and 7, got {invalid}")
        return sorted(set(value))


class ScheduleConfigOut(BaseModel):
    configured: bool
    auto_open_enabled: bool
    auto_close_enabled: bool
    open_hour: int
    open_minute: int
    close_hour: int
    close_minute: int
    active_days: List[int]
    timezone: str
    updated_at: Optional[str] = None


class ScheduledOperationOut(BaseModel):
    type: str
    scheduled_time: str
    enabled: bool


class OperationLogOut(BaseModel):
    id: int
    operation_type: str
    status: str
    local_date: str
    scheduled_time: Optional[str]
    executed_time: Optional[str]
    cash_register_id: Optional[int]
    report_id: Optional[int]
    error_message: Optional[str]
    notes: Optional[str]


def _config_out(config: Optional[CashScheduleConfig]) -> ScheduleConfigOut:
    if config is None:
        # Sin configuración: automatización deshabilitada, valores por defecto
        return ScheduleConfigOut(
            configured=False,
            auto_open_enabled=False,
            auto_close_enabled=False,
            open_hour=9,
            open_minute=0,
            close_hour=18,
            close_minute=0,
            active_days=[1, 2, 3, 4, 5, 6, 7],
            timezone=settings.default_timezone,
        )
    return ScheduleConfigOut(
        configured=True,
        auto_open_enabled=config.auto_open_enabled,
        auto_close_enabled=config.auto_close_enabled,
        open_hour=config.open_hour,
        open_minute=config.open_minute,
        close_hour=config.close_hour,
        close_minute=config.close_minute,
        active_days=sorted(parse_active_days(config.active_days)),
        timezone=config.timezone,
        updated_at=serialize_datetime(config.updated_at or config.created_at),
    )


@router.get("/config", response_model=ScheduleConfigOut)
def get_config(db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    return _config_out(get_schedule_config(db, tenant.id))


@router.put("/config", response_model=ScheduleConfigOut)
def update_config(data: ScheduleConfigIn, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    try:
        config = upsert_schedule_config(db, tenant.id, data.model_dump())
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(config)
    return _config_out(config)


@router.get("/operations", response_model=List[ScheduledOperationOut])
def get_scheduled_operations(db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    """Próximas aperturas/cierres automáticos según la configuración actual."""
    config = get_schedule_config(db, tenant.id)
    return [
        ScheduledOperationOut(type=op.type, scheduled_time=op.scheduled_time.isoformat(), enabled=op.enabled)
        for op in next_occurrences(config, utc_now())
    ]


@router.get("/log", response_model=List[OperationLogOut])
def get_operations_log(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    return [
        OperationLogOut(
            id=entry.id,
            operation_type=entry.operation_type,
            status=entry.status,
            local_date=entry.local_date.isoformat(),
            scheduled_time=serialize_datetime(entry.scheduled_time),
            executed_time=serialize_datetime(entry.executed_time),
            cash_register_id=entry.cash_register_id,
            report_id=entry.report_id,
            error_message=entry.error_message,
            notes=entry.notes,
        )
        for entry in query_operation_log(db, tenant.id, limit)
    ]


@router.get("/service-status")
def get_service_status(service: CashAutomationService = Depends(get_automation_service)):
    return service.get_status()


@router.post("/service/start")
def start_service(service: CashAutomationService = Depends(get_automation_service)):
    started = service.start()
    return {"status": "ok", "changed": started, **service.get_status()}


@router.post("/service/stop")
def stop_service(service: CashAutomationService = Depends(get_automation_service)):
    stopped = service.stop()
    return {"status": "ok", "changed": stopped, **service.get_status()}
