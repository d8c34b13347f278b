# tests/conftest.py
"""Shared fixtures: SQLite-backed sessions and a seeded pricing configuration."""

import os
import sqlite3
import sys
import tempfile
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(tempfile.gettempdir(), "pricing_default.db"))
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "pricing-test-logs"))
os.environ.setdefault("QUOTE_RETRY_BACKOFF_SECONDS", "0")

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.database import create_tables
from app.models.enums import RatePlanType
from app.models.parking import ParkingLot, ParkingSpace
from app.models.rate_binding import LotRateAssignment
from app.models.rate_plan import RatePlan
from app.models.rate_rule import RateRule


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'pricing.db'}", connect_args={"check_same_thread": False})
    create_tables(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _seed(db, plan_type=RatePlanType.PER_HOUR, currency="ALL", time_zone="UTC", grace=15, increment=15,
          daily_cap=None, rules=({"price_per_hour": Decimal("100")},), with_assignment=True):
    now = datetime.utcnow()
    lot = ParkingLot(name="Central", address="Main street 1", created_at=now)
    db.add(lot)
    db.flush()
    space = ParkingSpace(label="A-01", parking_lot_id=lot.id, vehicle_type="CAR", created_at=now)
    other = ParkingSpace(label="A-02", parking_lot_id=lot.id, vehicle_type="CAR", created_at=now)
    plan = RatePlan(name="Hourly", type=plan_type.value, currency=currency, time_zone=time_zone,
                    grace_minutes=grace, increment_minutes=increment, daily_cap=daily_cap,
                    active=True, created_at=now)
    db.add_all([space, other, plan])
    db.flush()
    for rule in rules:
        db.add(RateRule(rate_plan_id=plan.id, created_at=now, **rule))
    if with_assignment:
        db.add(LotRateAssignment(parking_lot_id=lot.id, rate_plan_id=plan.id, priority=0, created_at=now))
    db.commit()
    return SimpleNamespace(lot_id=lot.id, space_id=space.id, other_space_id=other.id, plan_id=plan.id)


@pytest.fixture
def seed_pricing():
    """Factory: lot + two spaces + one plan assigned to the lot (defaults: 100 ALL/h, 15' grace and increment)."""
    return _seed


@pytest.fixture
def dropped_plan_reads(db):
    """
    Factory: the next `times` parameterised SELECTs on rate_plans fail the
    way a dropped server connection does (the connection is invalidated and
    the session's transaction is unusable until rolled back).
    """
    engine = db.get_bind()
    state = {"left": 0, "failed": 0}

    def fail_plan_read(cursor, statement, parameters, context):
        if state["left"] > 0 and "FROM rate_plans" in statement:
            state["left"] -= 1
            state["failed"] += 1
            raise sqlite3.OperationalError("server closed the connection unexpectedly")
        return False

    def mark_disconnect(ctx):
        if "server closed the connection" in str(ctx.original_exception):
            ctx.is_disconnect = True

    event.listen(engine, "do_execute", fail_plan_read)
    event.listen(engine, "handle_error", mark_disconnect)

    def arm(times=1):
        state["left"] = times
        return state

    yield arm
    event.remove(engine, "do_execute", fail_plan_read)
    event.remove(engine, "handle_error", mark_disconnect)
