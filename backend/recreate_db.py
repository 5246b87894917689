"""
Script to recreate the cash automation schema from the models and seed the demo tenant
"""
from sqlalchemy import create_engine

import cash_automation.models  # noqa: F401
from cash_automation.core.config import settings
from cash_automation.core.database import SessionLocal
from cash_automation.models.tenant import Base
from cash_automation.services.seed import seed_demo


def recreate_db():
    print("Recreating cash automation database...")

    engine = create_engine(settings.database_url, pool_pre_ping=True)

    print("Dropping existing tables...")
    Base.metadata.drop_all(bind=engine)

    print("Creating tables...")
    Base.metadata.create_all(bind=engine)

    print("Seeding demo tenant...")
    db = SessionLocal()
    try:
        seed_demo(db)
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()

    print("Database recreated successfully!")
    print("Tenant: demo (automation disabled, enable it via PUT /cash-schedule/config)")


if __name__ == "__main__":
    recreate_db()
