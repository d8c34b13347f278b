# app/services/rate_catalog.py
"""
Read-only rate catalog consumed by the pricing core.

The resolver and quote engine never touch the ORM directly; they read plans,
rules, assignments and overrides through a catalog object, so a quote runs
against whatever snapshot the catalog exposes:
  - SqlRateCatalog    reads the live tables through a SQLAlchemy session
  - InMemoryRateCatalog holds fixtures (seeding, tests)

Database failures (statement timeout, pool exhaustion, dropped connection)
surface as Unavailable.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.models.enums import RatePlanType
from app.models.parking import ParkingSpace
from app.models.rate_binding import LotRateAssignment, SpaceRateOverride
from app.models.rate_plan import RatePlan
from app.models.rate_rule import RateRule
from app.services.pricing_errors import Unavailable
from app.utils.logger import get_logger
from app.utils.time_utils import as_utc

logger = get_logger(__name__)


@dataclass(frozen=True)
class RatePlanRecord:
    id: int
    name: str
    type: RatePlanType
    currency: str
    time_zone: str
    grace_minutes: int = 0
    increment_minutes: int = 0
    daily_cap: Optional[Decimal] = None
    active: bool = True


@dataclass(frozen=True)
class RateRuleRecord:
    id: int
    rate_plan_id: int
    start_minute: Optional[int] = None
    end_minute: Optional[int] = None
    start_time: Optional[str] = None      # "HH:MM"
    end_time: Optional[str] = None
    day_of_week: Optional[str] = None
    vehicle_type: Optional[str] = None
    user_group: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    price_flat: Optional[Decimal] = None

    @property
    def is_flat(self) -> bool:
        return self.price_flat is not None


@dataclass(frozen=True)
class RateBindingRecord:
    """A lot assignment or a space override; both resolve the same way."""
    id: int
    rate_plan_id: int
    priority: int
    effective_from: Optional[datetime] = None   # aware UTC, None = unbounded
    effective_to: Optional[datetime] = None

    def is_effective_at(self, at: datetime) -> bool:
        if self.effective_from is not None and at < self.effective_from:
            return False
        if self.effective_to is not None and at >= self.effective_to:
            return False
        return True


class RateCatalog(Protocol):
    def get_plan(self, plan_id: int) -> Optional[RatePlanRecord]: ...
    def list_active_plans(self) -> List[RatePlanRecord]: ...
    def list_rules(self, plan_id: int) -> List[RateRuleRecord]: ...
    def list_lot_assignments(self, lot_id: int) -> List[RateBindingRecord]: ...
    def list_space_overrides(self, space_id: int) -> List[RateBindingRecord]: ...
    def get_space_lot_id(self, space_id: int) -> Optional[int]: ...


# ── Row → record conversion ─────────────────────────────────────────────────

def plan_record(row: RatePlan) -> RatePlanRecord:
    return RatePlanRecord(
        id=row.id,
        name=row.name,
        type=RatePlanType(row.type),
        currency=row.currency,
        time_zone=row.time_zone,
        grace_minutes=row.grace_minutes or 0,
        increment_minutes=row.increment_minutes or 0,
        daily_cap=Decimal(row.daily_cap) if row.daily_cap is not None else None,
        active=bool(row.active),
    )


def rule_record(row: RateRule) -> RateRuleRecord:
    return RateRuleRecord(
        id=row.id,
        rate_plan_id=row.rate_plan_id,
        start_minute=row.start_minute,
        end_minute=row.end_minute,
        start_time=row.start_time,
        end_time=row.end_time,
        day_of_week=row.day_of_week,
        vehicle_type=row.vehicle_type,
        user_group=row.user_group,
        price_per_hour=Decimal(row.price_per_hour) if row.price_per_hour is not None else None,
        price_flat=Decimal(row.price_flat) if row.price_flat is not None else None,
    )


def binding_record(row) -> RateBindingRecord:
    return RateBindingRecord(
        id=row.id,
        rate_plan_id=row.rate_plan_id,
        priority=row.priority or 0,
        effective_from=as_utc(row.effective_from) if row.effective_from else None,
        effective_to=as_utc(row.effective_to) if row.effective_to else None,
    )


class SqlRateCatalog:
    """Catalog backed by the rate tables."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _reading(self, what: str):
        try:
            yield
        except (OperationalError, PoolTimeoutError) as e:
            logger.warning(f"[CATALOG] {what} failed: {e.__class__.__name__}: {e}")
            # the transaction is unusable until rolled back; this also drops any row locks
            self.db.rollback()
            raise Unavailable(f"Rate catalog temporarily unavailable while reading {what}") from e

    def get_plan(self, plan_id: int) -> Optional[RatePlanRecord]:
        with self._reading(f"rate plan {plan_id}"):
            row = self.db.query(RatePlan).filter(RatePlan.id == plan_id).first()
        return plan_record(row) if row else None

    def list_active_plans(self) -> List[RatePlanRecord]:
        with self._reading("active rate plans"):
            rows = self.db.query(RatePlan).filter(RatePlan.active == True).order_by(RatePlan.id).all()  # noqa: E712
        return [plan_record(r) for r in rows]

    def list_rules(self, plan_id: int) -> List[RateRuleRecord]:
        with self._reading(f"rules of plan {plan_id}"):
            rows = self.db.query(RateRule).filter(RateRule.rate_plan_id == plan_id).order_by(RateRule.id).all()
        return [rule_record(r) for r in rows]

    def list_lot_assignments(self, lot_id: int) -> List[RateBindingRecord]:
        with self._reading(f"assignments of lot {lot_id}"):
            rows = self.db.query(LotRateAssignment).filter(LotRateAssignment.parking_lot_id == lot_id).all()
        return [binding_record(r) for r in rows]

    def list_space_overrides(self, space_id: int) -> List[RateBindingRecord]:
        with self._reading(f"overrides of space {space_id}"):
            rows = self.db.query(SpaceRateOverride).filter(SpaceRateOverride.parking_space_id == space_id).all()
        return [binding_record(r) for r in rows]

    def get_space_lot_id(self, space_id: int) -> Optional[int]:
        with self._reading(f"parking space {space_id}"):
            space = self.db.query(ParkingSpace).filter(ParkingSpace.id == space_id).first()
        return space.parking_lot_id if space else None


class InMemoryRateCatalog:
    """Catalog over plain records; used for seeding previews and tests."""

    def __init__(self):
        self.plans: Dict[int, RatePlanRecord] = {}
        self.rules: Dict[int, List[RateRuleRecord]] = {}
        self.lot_assignments: Dict[int, List[RateBindingRecord]] = {}
        self.space_overrides: Dict[int, List[RateBindingRecord]] = {}
        self.space_lots: Dict[int, int] = {}

    def add_plan(self, plan: RatePlanRecord) -> RatePlanRecord:
        self.plans[plan.id] = plan
        return plan

    def add_rule(self, rule: RateRuleRecord) -> RateRuleRecord:
        self.rules.setdefault(rule.rate_plan_id, []).append(rule)
        return rule

    def assign_lot(self, lot_id: int, binding: RateBindingRecord) -> RateBindingRecord:
        self.lot_assignments.setdefault(lot_id, []).append(binding)
        return binding

    def override_space(self, space_id: int, binding: RateBindingRecord) -> RateBindingRecord:
        self.space_overrides.setdefault(space_id, []).append(binding)
        return binding

    def add_space(self, space_id: int, lot_id: int):
        self.space_lots[space_id] = lot_id

    def get_plan(self, plan_id: int) -> Optional[RatePlanRecord]:
        return self.plans.get(plan_id)

    def list_active_plans(self) -> List[RatePlanRecord]:
        return [p for _, p in sorted(self.plans.items()) if p.active]

    def list_rules(self, plan_id: int) -> List[RateRuleRecord]:
        return list(self.rules.get(plan_id, []))

    def list_lot_assignments(self, lot_id: int) -> List[RateBindingRecord]:
        return list(self.lot_assignments.get(lot_id, []))

    def list_space_overrides(self, space_id: int) -> List[RateBindingRecord]:
        return list(self.space_overrides.get(space_id, []))

    def get_space_lot_id(self, space_id: int) -> Optional[int]:
        return self.space_lots.get(space_id)
