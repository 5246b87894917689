import logging
from contextlib import asynccontextmanager
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cash_automation.core.config import settings
from cash_automation.core.database import SessionLocal, init_db
from cash_automation.core.logging_config import configure_logging
from cash_automation.routes.health import router as health_router
from cash_automation.routes.cash_schedule import router as cash_schedule_router
from cash_automation.routes.cash_register import router as cash_register_router
from cash_automation.routes.reports import router as reports_router
from cash_automation.services.automation_service import CashAutomationService
from cash_automation.services.seed import seed_demo

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Only seed in development or when explicitly requested
    if settings.env == "dev" or os.getenv("FORCE_SEED") == "true":
        init_db()
        with SessionLocal() as db:
            seed_demo(db)

    service: CashAutomationService = app.state.automation_service
    if settings.automation_autostart:
        service.start()
    else:
        logger.info("Cash automation autostart disabled")
    try:
        yield
    finally:
        service.stop()


def create_app(automation_service: Optional[CashAutomationService] = None) -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Cash Automation API", version="0.1.0", lifespan=lifespan)

    app.state.automation_service = automation_service or CashAutomationService(
        SessionLocal,
        poll_seconds=settings.automation_poll_seconds,
        window_minutes=settings.automation_window_minutes,
    )

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health_router, tags=["health"])
    app.include_router(cash_schedule_router, prefix="/cash-schedule", tags=["cash-schedule"])
    app.include_router(cash_register_router, prefix="/cash-register", tags=["cash-register"])
    app.include_router(reports_router, prefix="/reports", tags=["reports"])

    return app


app = create_app()
