# app/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite works for local runs and tests).
All models are auto-imported here so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.config import settings


def _engine_kwargs() -> dict:
    if settings.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,          # Auto-reconnect if DB connection drops
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS,
        # Every statement gets a server-side deadline; a slow catalog read
        # surfaces as OperationalError -> Unavailable instead of a hang.
        "connect_args": {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"},
    }


engine = create_engine(settings.DATABASE_URL, echo=False, **_engine_kwargs())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.parking import ParkingLot, ParkingSpace       # noqa
    from app.models.rate_plan import RatePlan                     # noqa
    from app.models.rate_rule import RateRule                     # noqa
    from app.models.rate_binding import LotRateAssignment, SpaceRateOverride  # noqa
    from app.models.booking import Booking                        # noqa
    from app.models.parking_session import ParkingSession         # noqa

    Base.metadata.create_all(bind=bind or engine)
