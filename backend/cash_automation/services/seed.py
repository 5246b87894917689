from sqlalchemy.orm import Session

from cash_automation.models.tenant import Tenant
from cash_automation.models.vendor import Vendor
from cash_automation.services.schedule_store import get_schedule_config, upsert_schedule_config


def seed_demo(db: Session):
    tenant = db.query(Tenant).filter(Tenant.slug == 'demo').first()
    if tenant is None:
        tenant = Tenant(name='Demo', slug='demo')
        db.add(tenant)
        db.flush()
        db.add(Vendor(tenant_id=tenant.id, name='Mostrador', commission_percentage=10))

    # Automation stays disabled until someone turns it on
    if get_schedule_config(db, tenant.id) is None:
        upsert_schedule_config(db, tenant.id, {})
    db.commit()
