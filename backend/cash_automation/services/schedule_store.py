from __future__ import annotations

from typing import Any, List, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from cash_automation.core.config import settings
from cash_automation.core.errors import ConfigurationMissing
from cash_automation.core.timezone_utils import is_valid_timezone
from cash_automation.models.cash_schedule import CashScheduleConfig
from cash_automation.models.tenant import Tenant
from cash_automation.services.schedule_evaluator import parse_active_days


def _normalize_int(value: Any, default: int, upper: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(0, min(upper, number))


def _normalize_days(value: Any) -> str:
    return ",".join(str(day) for day in sorted(parse_active_days(value)))


def get_schedule_config(db: Session, tenant_id: int) -> Optional[CashScheduleConfig]:
    return db.query(CashScheduleConfig).filter(CashScheduleConfig.tenant_id == tenant_id).first()


def require_schedule_config(db: Session, tenant_id: int) -> CashScheduleConfig:
    config = get_schedule_config(db, tenant_id)
    if config is None:
        raise ConfigurationMissing(f"No cash schedule configured for tenant {tenant_id}", tenant_id=tenant_id)
    return config


def upsert_schedule_config(db: Session, tenant_id: int, fields: Mapping[str, Any]) -> CashScheduleConfig:
    """
    Create or update the tenant's schedule. Input is normalized:
    - missing times fall back to 09:00 / 18:00, out-of-range values are clamped
    - active days are deduplicated and sorted; missing means every day
    - missing timezone means the configured default; an unknown one is rejected
    The caller owns the transaction.
    """
    timezone_name = fields.get("timezone") or settings.default_timezone
    if not is_valid_timezone(timezone_name):
        raise ValueError(f"Unknown timezone: {timezone_name}")

    clean = {
        "auto_open_enabled": bool(fields.get("auto_open_enabled", False)),
        "auto_close_enabled": bool(fields.get("auto_close_enabled", False)),
        "open_hour": _normalize_int(fields.get("open_hour"), 9, 23),
        "open_minute": _normalize_int(fields.get("open_minute"), 0, 59),
        "close_hour": _normalize_int(fields.get("close_hour"), 18, 23),
        "close_minute": _normalize_int(fields.get("close_minute"), 0, 59),
        "active_days": _normalize_days(fields.get("active_days")),
        "timezone": timezone_name,
    }

    config = get_schedule_config(db, tenant_id)
    if config is None:
        config = CashScheduleConfig(tenant_id=tenant_id, **clean)
        db.add(config)
    else:
        for key, value in clean.items():
            setattr(config, key, value)
    db.flush()
    return config


def list_automated_tenant_ids(db: Session) -> List[int]:
    """Active tenants with at least one automatic operation enabled."""
    rows = (
        db.query(Tenant.id)
        .join(CashScheduleConfig, CashScheduleConfig.tenant_id == Tenant.id)
        .filter(
            Tenant.is_active.is_(True),
            or_(
                CashScheduleConfig.auto_open_enabled.is_(True),
                CashScheduleConfig.auto_close_enabled.is_(True),
            ),
        )
        .order_by(Tenant.id)
        .all()
    )
    return [row[0] for row in rows]
