from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cash_automation.core.database import get_db
from cash_automation.core.deps import get_tenant
from cash_automation.core.serialization_helpers import serialize_datetime, serialize_decimal
from cash_automation.models.daily_report import DailyReport
from cash_automation.models.tenant import Tenant

router = APIRouter()


class DailyReportSummary(BaseModel):
    id: int
    report_date: str
    cash_register_id: Optional[int]
    opening_balance: str
    total_income: str
    total_expenses: str
    total_debt_payments: str
    net_profit: str
    vendor_commissions: str
    closing_balance: str
    total_movements: int
    is_auto_generated: bool
    auto_generated_type: Optional[str]
    created_at: Optional[str]


def _summary(report: DailyReport) -> DailyReportSummary:
    return DailyReportSummary(
        id=report.id,
        report_date=report.report_date.isoformat(),
        cash_register_id=report.cash_register_id,
        opening_balance=serialize_decimal(report.opening_balance),
        total_income=serialize_decimal(report.total_income),
        total_expenses=serialize_decimal(report.total_expenses),
        total_debt_payments=serialize_decimal(report.total_debt_payments),
        net_profit=serialize_decimal(report.net_profit),
        vendor_commissions=serialize_decimal(report.vendor_commissions),
        closing_balance=serialize_decimal(report.closing_balance),
        total_movements=report.total_movements,
        is_auto_generated=report.is_auto_generated,
        auto_generated_type=report.auto_generated_type,
        created_at=serialize_datetime(report.created_at),
    )


@router.get("/daily", response_model=List[DailyReportSummary])
def list_daily_reports(
    for_date: Optional[date] = None,
    limit: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    """Cierres guardados, más recientes primero. No recalcula nada."""
    query = db.query(DailyReport).filter(DailyReport.tenant_id == tenant.id)
    if for_date is not None:
        query = query.filter(DailyReport.report_date == for_date)
    reports = query.order_by(DailyReport.report_date.desc(), DailyReport.id.desc()).limit(limit).all()
    return [_summary(report) for report in reports]


@router.get("/daily/{report_id}")
def get_daily_report(report_id: int, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    """Reporte completo, incluido el detalle por transacción y por vendedor."""
    report = (
        db.query(DailyReport)
        .filter(DailyReport.id == report_id, DailyReport.tenant_id == tenant.id)
        .first()
    )
    if not report:
        raise HTTPException(status_code=404, detail="Reporte no encontrado")

    return {
        **_summary(report).model_dump(),
        "exchange_rate_used": serialize_decimal(report.exchange_rate_used),
        "currency_breakdown": {
            "efectivo_ars": serialize_decimal(report.efectivo_ars),
            "efectivo_usd": serialize_decimal(report.efectivo_usd),
            "transferencia_ars": serialize_decimal(report.transferencia_ars),
            "transferencia_usd": serialize_decimal(report.transferencia_usd),
            "transferencia_usdt": serialize_decimal(report.transferencia_usdt),
            "financiera_ars": serialize_decimal(report.financiera_ars),
            "financiera_usd": serialize_decimal(report.financiera_usd),
        },
        "report_data": report.report_data,
    }
