# app/services/session_service.py
"""
Parking session facade — open-ended occupancy of a space.

A session occupies [started_at, expected_end_time), or is unbounded while
no expected end is known. Nothing is priced until the session stops: stop
quotes [started_at, ended_at) once and stores billed_amount. estimate()
prices a still-running session up to now without persisting anything.
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.models.enums import SessionSortField, SessionStatus, SortDirection
from app.models.parking_session import ParkingSession
from app.schemas.parking_session import SessionStart, SessionUpdate
from app.services.availability import ensure_available, reserve_space
from app.services.lifecycle import check_session_transition
from app.services.pricing_errors import InvalidInterval, InvalidStatusTransition, PricingError, ResourceNotFound
from app.services.pricing_service import quote_for
from app.services.quote_engine import Quote
from app.utils.logger import get_logger
from app.utils.time_utils import as_utc, to_db, utc_now

logger = get_logger(__name__)


def _reference() -> str:
    return f"PS-{uuid.uuid4().hex[:10].upper()}"


def get_session(db: Session, session_id: int) -> ParkingSession:
    session = db.query(ParkingSession).filter(ParkingSession.id == session_id).first()
    if not session:
        raise ResourceNotFound(f"Parking session {session_id} not found")
    return session


_SORT_COLUMNS = {
    SessionSortField.STARTED_AT: ParkingSession.started_at,
    SessionSortField.ENDED_AT: ParkingSession.ended_at,
    SessionSortField.BILLED_AMOUNT: ParkingSession.billed_amount,
    SessionSortField.STATUS: ParkingSession.status,
    SessionSortField.CREATED_AT: ParkingSession.created_at,
}


def list_sessions(db: Session, page: int, size: int, status: Optional[str] = None,
                  space_id: Optional[int] = None, lot_id: Optional[int] = None,
                  sort_by: SessionSortField = SessionSortField.STARTED_AT,
                  sort_dir: SortDirection = SortDirection.DESC) -> Tuple[List[ParkingSession], int]:
    q = db.query(ParkingSession)
    if status:
        q = q.filter(ParkingSession.status == status)
    if space_id is not None:
        q = q.filter(ParkingSession.parking_space_id == space_id)
    if lot_id is not None:
        q = q.filter(ParkingSession.parking_lot_id == lot_id)
    total = q.count()

    column = _SORT_COLUMNS[SessionSortField(sort_by)]
    if SortDirection(sort_dir) == SortDirection.ASC:
        order = (column.asc(), ParkingSession.id.asc())
    else:
        order = (column.desc(), ParkingSession.id.desc())
    items = q.order_by(*order).offset(page * size).limit(size).all()
    return items, total


def start_session(db: Session, body: SessionStart) -> ParkingSession:
    started = as_utc(body.started_at) if body.started_at else utc_now()
    expected_end = as_utc(body.end_time) if body.end_time else None
    if expected_end is not None and expected_end <= started:
        raise InvalidInterval("endTime must be after the session start")

    with reserve_space(db, body.parking_space_id) as space:
        ensure_available(db, space.id, started, expected_end)
        now = datetime.utcnow()
        session = ParkingSession(
            session_reference=_reference(),
            parking_space_id=space.id,
            parking_lot_id=space.parking_lot_id,
            vehicle_plate=body.vehicle_plate.upper(),
            vehicle_type=body.vehicle_type.value,
            user_group=body.user_group.value,
            started_at=to_db(started),
            expected_end_time=to_db(expected_end),
            status=SessionStatus.ACTIVE.value,
            payment_method_id=body.payment_method_id,
            notes=body.notes,
            created_at=now,
            updated_at=now,
        )
        db.add(session)
        db.commit()
        db.refresh(session)

    logger.info(f"[SESSION] {session.session_reference} started space={session.parking_space_id} "
                f"at {started.isoformat()}")
    return session


def _price(db: Session, session: ParkingSession, end: datetime, vehicle_type=None, user_group=None) -> Quote:
    return quote_for(db, session.parking_space_id, session.parking_lot_id,
                     vehicle_type or session.vehicle_type, user_group or session.user_group,
                     as_utc(session.started_at), end)


def _settle(db: Session, session: ParkingSession, end: datetime, status: SessionStatus,
            vehicle_type=None, user_group=None) -> ParkingSession:
    """Quote [started_at, end), store the bill and move to `status`; caller commits."""
    check_session_transition(session.status, status.value)
    if end <= as_utc(session.started_at):
        raise InvalidInterval("endTime must be after the session start")
    # priced before any field changes: a catalog retry rolls the session back
    quote = _price(db, session, end, vehicle_type, user_group)
    session.ended_at = to_db(end)
    session.billed_amount = quote.amount
    session.currency = quote.currency
    session.price_breakdown = quote.breakdown
    session.status = status.value
    session.updated_at = datetime.utcnow()
    return session


def stop_session(db: Session, session_id: int, end_time: Optional[datetime] = None,
                 notes: Optional[str] = None) -> ParkingSession:
    session = get_session(db, session_id)
    end = as_utc(end_time) if end_time else utc_now()
    _settle(db, session, end, SessionStatus.COMPLETED)
    if notes is not None:
        session.notes = notes
    db.commit()
    db.refresh(session)
    logger.info(f"[SESSION] {session.session_reference} stopped billed={session.billed_amount} {session.currency}")
    return session


def estimate_session(db: Session, session_id: int, until: Optional[datetime] = None) -> Quote:
    session = get_session(db, session_id)
    if session.status != SessionStatus.ACTIVE.value:
        raise InvalidStatusTransition(f"Session {session.session_reference} is {session.status}; nothing to estimate")
    return _price(db, session, as_utc(until) if until else utc_now())


def cancel_session(db: Session, session_id: int) -> ParkingSession:
    session = get_session(db, session_id)
    check_session_transition(session.status, SessionStatus.CANCELLED.value)
    session.status = SessionStatus.CANCELLED.value
    session.ended_at = datetime.utcnow()
    session.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(session)
    logger.info(f"[SESSION] {session.session_reference} cancelled")
    return session


def _apply_edits(session: ParkingSession, body: SessionUpdate):
    if body.vehicle_plate is not None:
        session.vehicle_plate = body.vehicle_plate.upper()
    if body.vehicle_type is not None:
        session.vehicle_type = body.vehicle_type.value
    if body.user_group is not None:
        session.user_group = body.user_group.value
    if body.payment_method_id is not None:
        session.payment_method_id = body.payment_method_id
    if body.notes is not None:
        session.notes = body.notes
    session.updated_at = datetime.utcnow()


def _move_expected_end(db: Session, session: ParkingSession, new_end: datetime,
                       edits: Optional[SessionUpdate] = None):
    """Set the expected end and commit; a later end re-checks the added tail for conflicts."""
    if session.status != SessionStatus.ACTIVE.value:
        raise InvalidStatusTransition(f"Session {session.session_reference} is {session.status}")
    if new_end <= as_utc(session.started_at):
        raise InvalidInterval("endTime must be after the session start")
    current_end = as_utc(session.expected_end_time) if session.expected_end_time else None

    with reserve_space(db, session.parking_space_id):
        if current_end is not None and new_end > current_end:
            ensure_available(db, session.parking_space_id, current_end, new_end, exclude_session_id=session.id)
        session.expected_end_time = to_db(new_end)
        session.updated_at = datetime.utcnow()
        if edits is not None:
            _apply_edits(session, edits)
        db.commit()


def extend_session(db: Session, session_id: int, new_end_time: datetime) -> ParkingSession:
    session = get_session(db, session_id)
    new_end = as_utc(new_end_time)
    if session.expected_end_time is not None and new_end <= as_utc(session.expected_end_time):
        raise InvalidInterval("newEndTime must be after the current expected end")
    _move_expected_end(db, session, new_end)
    db.refresh(session)
    logger.info(f"[SESSION] {session.session_reference} expected end → {new_end.isoformat()}")
    return session


def update_session(db: Session, session_id: int, body: SessionUpdate) -> ParkingSession:
    """Validates the status change first; all edits land in a single commit."""
    session = get_session(db, session_id)
    target = body.status if body.status is not None and body.status.value != session.status else None
    if target is not None:
        check_session_transition(session.status, target.value)

    if target is None and body.end_time is not None:
        _move_expected_end(db, session, as_utc(body.end_time), edits=body)
        db.refresh(session)
        return session

    if target == SessionStatus.COMPLETED:
        end = as_utc(body.end_time) if body.end_time else utc_now()
        _settle(db, session, end, SessionStatus.COMPLETED, body.vehicle_type, body.user_group)
    elif target is not None:
        session.status = target.value
        session.ended_at = datetime.utcnow()

    _apply_edits(session, body)
    db.commit()
    db.refresh(session)
    return session


def delete_session(db: Session, session_id: int):
    session = get_session(db, session_id)
    db.delete(session)
    db.commit()
    logger.info(f"[SESSION] {session.session_reference} deleted")


def _settle_batch(db: Session, rows, end_of, status: SessionStatus) -> Tuple[List[int], List[int]]:
    settled, failed = [], []
    for session in rows:
        try:
            _settle(db, session, end_of(session), status)
            db.commit()
            settled.append(session.id)
        except PricingError as e:
            db.rollback()
            failed.append(session.id)
            logger.error(f"[MAINT] could not settle {session.session_reference}: {e.code}: {e.message}")
    return settled, failed


def complete_overdue_sessions(db: Session, now: Optional[datetime] = None) -> Tuple[List[int], List[int]]:
    """ACTIVE sessions past their expected end → COMPLETED, billed to the expected end."""
    cutoff = to_db(now or utc_now())
    rows = db.query(ParkingSession).filter(
        ParkingSession.status == SessionStatus.ACTIVE.value,
        ParkingSession.expected_end_time != None,  # noqa: E711
        ParkingSession.expected_end_time <= cutoff,
    ).all()
    settled, failed = _settle_batch(db, rows, lambda s: as_utc(s.expected_end_time), SessionStatus.COMPLETED)
    if rows:
        logger.info(f"[MAINT] completed {len(settled)} overdue sessions, {len(failed)} failed")
    return settled, failed


def expire_stale_sessions(db: Session, now: Optional[datetime] = None) -> Tuple[List[int], List[int]]:
    """Open-ended ACTIVE sessions older than SESSION_MAX_HOURS → EXPIRED, billed up to that limit."""
    limit = timedelta(hours=settings.SESSION_MAX_HOURS)
    cutoff = to_db(now or utc_now()) - limit
    rows = db.query(ParkingSession).filter(
        ParkingSession.status == SessionStatus.ACTIVE.value,
        ParkingSession.expected_end_time == None,  # noqa: E711
        ParkingSession.started_at <= cutoff,
    ).all()
    settled, failed = _settle_batch(db, rows, lambda s: as_utc(s.started_at) + limit, SessionStatus.EXPIRED)
    if rows:
        logger.info(f"[MAINT] expired {len(settled)} stale sessions, {len(failed)} failed")
    return settled, failed
