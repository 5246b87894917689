from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "dev"
    database_url: str = "postgresql+psycopg2://cashuser:cashpass@db:5432/cashauto"
    tenant_header: str = "X-Tenant-ID"
    backend_cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Scheduler
    automation_autostart: bool = True
    automation_poll_seconds: int = 60
    automation_window_minutes: int = 5  # matching window after the scheduled minute

    # Defaults stamped on new configs and auto-opened registers
    default_timezone: str = "America/Argentina/Buenos_Aires"
    default_exchange_rate: Decimal = Decimal("1200.00")
    default_commission_rate: Decimal = Decimal("10")

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
