from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cash_automation.core.config import settings
from cash_automation.models.tenant import Base


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # Create tables in dev/test without running Alembic
    import cash_automation.models  # noqa: F401  registers every table on Base.metadata

    if settings.env in {"dev", "test"}:
        Base.metadata.create_all(bind=bind or engine)
