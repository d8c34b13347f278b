# app/routers/sessions.py
"""Parking session endpoints. Sessions are billed once, at stop time."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.enums import SessionSortField, SessionStatus, SortDirection
from app.routers.pagination import PageParams, page_params
from app.schemas.common import Page
from app.schemas.parking_session import SessionExtend, SessionOut, SessionStart, SessionStop, SessionUpdate
from app.schemas.quote import QuoteOut, QuoteRequest
from app.services import session_service
from app.services.availability import is_available
from app.services.pricing_errors import InvalidInterval
from app.services.pricing_service import quote_for
from app.utils.time_utils import as_utc

router = APIRouter()


def _session_page(db: Session, params: PageParams, status: Optional[SessionStatus], space_id: Optional[int],
                  lot_id: Optional[int], sort_by: SessionSortField, sort_dir: SortDirection) -> Page[SessionOut]:
    items, total = session_service.list_sessions(
        db, params.page, params.size, status.value if status else None, space_id, lot_id, sort_by, sort_dir
    )
    return Page[SessionOut].build([SessionOut.model_validate(s) for s in items], params.page, params.size, total)


@router.get("/parking-sessions", response_model=Page[SessionOut], summary="List parking sessions")
def list_sessions(
    status: Optional[SessionStatus] = None,
    space_id: Optional[int] = Query(None, alias="spaceId"),
    lot_id: Optional[int] = Query(None, alias="lotId"),
    sort_by: SessionSortField = Query(SessionSortField.STARTED_AT, alias="sortBy"),
    sort_dir: SortDirection = Query(SortDirection.DESC, alias="sortDir"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    return _session_page(db, params, status, space_id, lot_id, sort_by, sort_dir)


@router.get("/admin/parking-sessions/spaces/{space_id}", response_model=Page[SessionOut],
            summary="Sessions of one space")
def list_space_sessions(
    space_id: int,
    status: Optional[SessionStatus] = None,
    sort_by: SessionSortField = Query(SessionSortField.STARTED_AT, alias="sortBy"),
    sort_dir: SortDirection = Query(SortDirection.DESC, alias="sortDir"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    return _session_page(db, params, status, space_id, None, sort_by, sort_dir)


@router.get("/admin/parking-sessions/lots/{lot_id}", response_model=Page[SessionOut],
            summary="Sessions of one lot")
def list_lot_sessions(
    lot_id: int,
    status: Optional[SessionStatus] = None,
    sort_by: SessionSortField = Query(SessionSortField.STARTED_AT, alias="sortBy"),
    sort_dir: SortDirection = Query(SortDirection.DESC, alias="sortDir"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    return _session_page(db, params, status, None, lot_id, sort_by, sort_dir)


@router.post("/parking-sessions/quote", response_model=QuoteOut, summary="Price a session window")
def session_quote(body: QuoteRequest, db: Session = Depends(get_db)):
    return quote_for(db, body.parking_space_id, None, body.vehicle_type, body.user_group,
                     body.start_time, body.end_time)


@router.get("/parking-sessions/availability", response_model=bool)
def session_availability(
    space_id: int = Query(..., alias="spaceId"),
    start_time: datetime = Query(..., alias="startTime"),
    end_time: Optional[datetime] = Query(None, alias="endTime"),
    db: Session = Depends(get_db),
):
    if end_time is not None and as_utc(end_time) <= as_utc(start_time):
        raise InvalidInterval("endTime must be after startTime")
    return is_available(db, space_id, start_time, end_time)


@router.post("/parking-sessions", response_model=SessionOut, status_code=201, summary="Start a session")
def start_session(body: SessionStart, db: Session = Depends(get_db)):
    return session_service.start_session(db, body)


@router.get("/parking-sessions/{session_id}", response_model=SessionOut)
def get_session(session_id: int, db: Session = Depends(get_db)):
    return session_service.get_session(db, session_id)


@router.get("/parking-sessions/{session_id}/estimate", response_model=QuoteOut,
            summary="Running price of an active session (not persisted)")
def estimate_session(session_id: int, db: Session = Depends(get_db)):
    return session_service.estimate_session(db, session_id)


@router.put("/parking-sessions/{session_id}", response_model=SessionOut)
def update_session(session_id: int, body: SessionUpdate, db: Session = Depends(get_db)):
    return session_service.update_session(db, session_id, body)


@router.delete("/parking-sessions/{session_id}", status_code=204)
def delete_session(session_id: int, db: Session = Depends(get_db)):
    session_service.delete_session(db, session_id)


@router.post("/parking-sessions/{session_id}/stop", response_model=SessionOut)
def stop_session(session_id: int, body: SessionStop, db: Session = Depends(get_db)):
    return session_service.stop_session(db, session_id, body.end_time, body.notes)


@router.post("/parking-sessions/{session_id}/cancel", response_model=SessionOut)
def cancel_session(session_id: int, db: Session = Depends(get_db)):
    return session_service.cancel_session(db, session_id)


@router.post("/parking-sessions/{session_id}/extend", response_model=SessionOut)
def extend_session(session_id: int, body: SessionExtend, db: Session = Depends(get_db)):
    return session_service.extend_session(db, session_id, body.new_end_time)


# ── Admin maintenance ───────────────────────────────────────────────────────

@router.post("/admin/parking-sessions/maintenance/update-expired", summary="Expire stale open sessions")
def update_expired_sessions(db: Session = Depends(get_db)):
    settled, failed = session_service.expire_stale_sessions(db)
    return {"updated": len(settled), "failed": failed, "status": "ok" if not failed else "partial"}


@router.post("/admin/parking-sessions/maintenance/update-completed", summary="Settle overdue sessions")
def update_completed_sessions(db: Session = Depends(get_db)):
    settled, failed = session_service.complete_overdue_sessions(db)
    return {"updated": len(settled), "failed": failed, "status": "ok" if not failed else "partial"}
