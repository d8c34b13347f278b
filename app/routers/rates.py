# app/routers/rates.py
"""Rate configuration — admin CRUD for plans, rules, lot assignments and space overrides."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.parking import ParkingLot, ParkingSpace
from app.models.rate_binding import LotRateAssignment, SpaceRateOverride
from app.models.rate_plan import RatePlan
from app.models.rate_rule import RateRule
from app.routers.pagination import PageParams, page_params
from app.schemas.common import Page
from app.schemas.rate_binding import (
    LotRateAssignmentCreate, LotRateAssignmentOut, SpaceRateOverrideCreate, SpaceRateOverrideOut,
)
from app.schemas.rate_plan import RatePlanCreate, RatePlanOut
from app.schemas.rate_rule import RateRuleCreate, RateRuleOut
from app.services.rate_catalog import SqlRateCatalog
from app.services.rate_plan_registry import RatePlanRegistry
from app.utils.logger import get_logger
from app.utils.time_utils import to_db

router = APIRouter(prefix="/admin/rates")
logger = get_logger(__name__)


def _page(q, order_col, params: PageParams, schema):
    total = q.count()
    rows = q.order_by(order_col).offset(params.offset).limit(params.size).all()
    return Page[schema].build([schema.model_validate(r) for r in rows], params.page, params.size, total)


def _get_or_404(db: Session, model, obj_id: int, label: str):
    obj = db.query(model).filter(model.id == obj_id).first()
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} {obj_id} not found")
    return obj


def _plan_columns(body: RatePlanCreate) -> dict:
    return {
        "name": body.name,
        "type": body.type.value,
        "currency": body.currency,
        "time_zone": body.time_zone,
        "grace_minutes": body.grace_minutes,
        "increment_minutes": body.increment_minutes,
        "daily_cap": body.daily_cap,
        "active": body.active,
    }


def _rule_columns(body: RateRuleCreate) -> dict:
    return {
        "rate_plan_id": body.rate_plan_id,
        "start_minute": body.start_minute,
        "end_minute": body.end_minute,
        "start_time": body.start_time,
        "end_time": body.end_time,
        "day_of_week": body.day_of_week.value if body.day_of_week else None,
        "vehicle_type": body.vehicle_type.value if body.vehicle_type else None,
        "user_group": body.user_group.value if body.user_group else None,
        "price_per_hour": body.price_per_hour,
        "price_flat": body.price_flat,
    }


def _window_columns(body) -> dict:
    return {
        "rate_plan_id": body.rate_plan_id,
        "priority": body.priority,
        "effective_from": to_db(body.effective_from),
        "effective_to": to_db(body.effective_to),
    }


def _apply(obj, columns: dict):
    for key, value in columns.items():
        setattr(obj, key, value)
    obj.updated_at = datetime.utcnow()


# ── Rate plans ──────────────────────────────────────────────────────────────

@router.get("/plans", response_model=Page[RatePlanOut], summary="List rate plans")
def list_plans(params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    return _page(db.query(RatePlan), RatePlan.id, params, RatePlanOut)


@router.get("/plans/active", response_model=list[RatePlanOut], summary="Active rate plans")
def list_active_plans(db: Session = Depends(get_db)):
    return RatePlanRegistry(SqlRateCatalog(db)).list_active()


@router.get("/plans/{plan_id}", response_model=RatePlanOut)
def get_plan(plan_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, RatePlan, plan_id, "Rate plan")


@router.post("/plans", response_model=RatePlanOut, status_code=201, summary="Create a rate plan")
def create_plan(body: RatePlanCreate, db: Session = Depends(get_db)):
    now = datetime.utcnow()
    plan = RatePlan(**_plan_columns(body), created_at=now, updated_at=now)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info(f"[RATES] plan #{plan.id} '{plan.name}' created ({plan.type})")
    return plan


@router.put("/plans/{plan_id}", response_model=RatePlanOut, summary="Update a rate plan")
def update_plan(plan_id: int, body: RatePlanCreate, db: Session = Depends(get_db)):
    """Edits apply to future quotes only; existing bookings keep their locked price."""
    plan = _get_or_404(db, RatePlan, plan_id, "Rate plan")
    _apply(plan, _plan_columns(body))
    db.commit()
    db.refresh(plan)
    logger.info(f"[RATES] plan #{plan.id} updated (active={plan.active})")
    return plan


@router.delete("/plans/{plan_id}", status_code=204, summary="Delete a rate plan and its rules")
def delete_plan(plan_id: int, db: Session = Depends(get_db)):
    plan = _get_or_404(db, RatePlan, plan_id, "Rate plan")
    in_use = (
        db.query(LotRateAssignment).filter(LotRateAssignment.rate_plan_id == plan_id).count()
        + db.query(SpaceRateOverride).filter(SpaceRateOverride.rate_plan_id == plan_id).count()
    )
    if in_use:
        raise HTTPException(
            status_code=409,
            detail=f"Rate plan {plan_id} is referenced by {in_use} assignment(s)/override(s); deactivate it instead",
        )
    db.delete(plan)
    db.commit()
    logger.info(f"[RATES] plan #{plan_id} deleted")


# ── Rate rules ──────────────────────────────────────────────────────────────

@router.get("/rules", response_model=Page[RateRuleOut], summary="List all rate rules")
def list_rules(params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    return _page(db.query(RateRule), RateRule.id, params, RateRuleOut)


@router.get("/plans/{plan_id}/rules", response_model=Page[RateRuleOut], summary="Rules of one plan")
def list_plan_rules(plan_id: int, params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    _get_or_404(db, RatePlan, plan_id, "Rate plan")
    return _page(db.query(RateRule).filter(RateRule.rate_plan_id == plan_id), RateRule.id, params, RateRuleOut)


@router.get("/rules/{rule_id}", response_model=RateRuleOut)
def get_rule(rule_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, RateRule, rule_id, "Rate rule")


@router.post("/rules", response_model=RateRuleOut, status_code=201, summary="Create a rate rule")
def create_rule(body: RateRuleCreate, db: Session = Depends(get_db)):
    _get_or_404(db, RatePlan, body.rate_plan_id, "Rate plan")
    now = datetime.utcnow()
    rule = RateRule(**_rule_columns(body), created_at=now, updated_at=now)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info(f"[RATES] rule #{rule.id} added to plan #{rule.rate_plan_id}")
    return rule


@router.put("/rules/{rule_id}", response_model=RateRuleOut, summary="Update a rate rule")
def update_rule(rule_id: int, body: RateRuleCreate, db: Session = Depends(get_db)):
    rule = _get_or_404(db, RateRule, rule_id, "Rate rule")
    _get_or_404(db, RatePlan, body.rate_plan_id, "Rate plan")
    _apply(rule, _rule_columns(body))
    db.commit()
    db.refresh(rule)
    return rule


@router.delete("/rules/{rule_id}", status_code=204)
def delete_rule(rule_id: int, db: Session = Depends(get_db)):
    rule = _get_or_404(db, RateRule, rule_id, "Rate rule")
    db.delete(rule)
    db.commit()


# ── Lot assignments ─────────────────────────────────────────────────────────

@router.get("/lot-assignments", response_model=Page[LotRateAssignmentOut])
def list_lot_assignments(params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    return _page(db.query(LotRateAssignment), LotRateAssignment.id, params, LotRateAssignmentOut)


@router.get("/lots/{lot_id}/rate-assignments", response_model=Page[LotRateAssignmentOut])
def list_assignments_of_lot(lot_id: int, params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    q = db.query(LotRateAssignment).filter(LotRateAssignment.parking_lot_id == lot_id)
    return _page(q, LotRateAssignment.id, params, LotRateAssignmentOut)


@router.get("/lot-assignments/{assignment_id}", response_model=LotRateAssignmentOut)
def get_lot_assignment(assignment_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, LotRateAssignment, assignment_id, "Lot rate assignment")


@router.post("/lot-assignments", response_model=LotRateAssignmentOut, status_code=201)
def create_lot_assignment(body: LotRateAssignmentCreate, db: Session = Depends(get_db)):
    _get_or_404(db, ParkingLot, body.parking_lot_id, "Parking lot")
    _get_or_404(db, RatePlan, body.rate_plan_id, "Rate plan")
    now = datetime.utcnow()
    row = LotRateAssignment(parking_lot_id=body.parking_lot_id, **_window_columns(body),
                            created_at=now, updated_at=now)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"[RATES] lot {row.parking_lot_id} ← plan #{row.rate_plan_id} (priority {row.priority})")
    return row


@router.put("/lot-assignments/{assignment_id}", response_model=LotRateAssignmentOut)
def update_lot_assignment(assignment_id: int, body: LotRateAssignmentCreate, db: Session = Depends(get_db)):
    row = _get_or_404(db, LotRateAssignment, assignment_id, "Lot rate assignment")
    _get_or_404(db, ParkingLot, body.parking_lot_id, "Parking lot")
    _get_or_404(db, RatePlan, body.rate_plan_id, "Rate plan")
    _apply(row, {"parking_lot_id": body.parking_lot_id, **_window_columns(body)})
    db.commit()
    db.refresh(row)
    return row


@router.delete("/lot-assignments/{assignment_id}", status_code=204)
def delete_lot_assignment(assignment_id: int, db: Session = Depends(get_db)):
    row = _get_or_404(db, LotRateAssignment, assignment_id, "Lot rate assignment")
    db.delete(row)
    db.commit()


# ── Space overrides ─────────────────────────────────────────────────────────

@router.get("/space-overrides", response_model=Page[SpaceRateOverrideOut])
def list_space_overrides(params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    return _page(db.query(SpaceRateOverride), SpaceRateOverride.id, params, SpaceRateOverrideOut)


@router.get("/spaces/{space_id}/rate-overrides", response_model=Page[SpaceRateOverrideOut])
def list_overrides_of_space(space_id: int, params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    q = db.query(SpaceRateOverride).filter(SpaceRateOverride.parking_space_id == space_id)
    return _page(q, SpaceRateOverride.id, params, SpaceRateOverrideOut)


@router.get("/space-overrides/{override_id}", response_model=SpaceRateOverrideOut)
def get_space_override(override_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, SpaceRateOverride, override_id, "Space rate override")


@router.post("/space-overrides", response_model=SpaceRateOverrideOut, status_code=201)
def create_space_override(body: SpaceRateOverrideCreate, db: Session = Depends(get_db)):
    _get_or_404(db, ParkingSpace, body.parking_space_id, "Parking space")
    _get_or_404(db, RatePlan, body.rate_plan_id, "Rate plan")
    now = datetime.utcnow()
    row = SpaceRateOverride(parking_space_id=body.parking_space_id, **_window_columns(body),
                            created_at=now, updated_at=now)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"[RATES] space {row.parking_space_id} ← plan #{row.rate_plan_id} override")
    return row


@router.put("/space-overrides/{override_id}", response_model=SpaceRateOverrideOut)
def update_space_override(override_id: int, body: SpaceRateOverrideCreate, db: Session = Depends(get_db)):
    row = _get_or_404(db, SpaceRateOverride, override_id, "Space rate override")
    _get_or_404(db, ParkingSpace, body.parking_space_id, "Parking space")
    _get_or_404(db, RatePlan, body.rate_plan_id, "Rate plan")
    _apply(row, {"parking_space_id": body.parking_space_id, **_window_columns(body)})
    db.commit()
    db.refresh(row)
    return row


@router.delete("/space-overrides/{override_id}", status_code=204)
def delete_space_override(override_id: int, db: Session = Depends(get_db)):
    row = _get_or_404(db, SpaceRateOverride, override_id, "Space rate override")
    db.delete(row)
    db.commit()
