from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from cash_automation.core.config import settings
from cash_automation.core.database import get_db
from cash_automation.models.tenant import Tenant
from cash_automation.services.automation_service import CashAutomationService


def get_tenant_slug(request: Request) -> str:
    tenant_slug = request.headers.get(settings.tenant_header)
    if tenant_slug:
        return tenant_slug
    # Fallback: subdomain e.g., tenant.myapp.com
    host = request.headers.get("host", "")
    parts = host.split(":")[0].split(".")
    if len(parts) >= 3:
        return parts[0]
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing tenant header")


def get_tenant(db: Session = Depends(get_db), tenant_slug: str = Depends(get_tenant_slug)) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.slug == tenant_slug).first()
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def get_automation_service(request: Request) -> CashAutomationService:
    service = getattr(request.app.state, "automation_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Automation service not configured")
    return service
