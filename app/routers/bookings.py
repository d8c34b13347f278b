# app/routers/bookings.py
"""Booking endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.enums import BookingSortField, BookingStatus, SortDirection
from app.routers.pagination import PageParams, page_params
from app.schemas.booking import BookingCreate, BookingExtend, BookingOut, BookingUpdate
from app.schemas.common import Page
from app.schemas.quote import QuoteOut, QuoteRequest
from app.services import booking_service
from app.services.availability import is_available
from app.services.pricing_errors import InvalidInterval
from app.services.pricing_service import quote_for
from app.utils.time_utils import as_utc

router = APIRouter()


def _booking_page(db: Session, params: PageParams, status: Optional[BookingStatus], space_id: Optional[int],
                  lot_id: Optional[int], sort_by: BookingSortField, sort_dir: SortDirection) -> Page[BookingOut]:
    items, total = booking_service.list_bookings(
        db, params.page, params.size, status.value if status else None, space_id, lot_id, sort_by, sort_dir
    )
    return Page[BookingOut].build([BookingOut.model_validate(b) for b in items], params.page, params.size, total)


@router.get("/bookings", response_model=Page[BookingOut], summary="List bookings")
def list_bookings(
    status: Optional[BookingStatus] = None,
    space_id: Optional[int] = Query(None, alias="spaceId"),
    lot_id: Optional[int] = Query(None, alias="lotId"),
    sort_by: BookingSortField = Query(BookingSortField.START_TIME, alias="sortBy"),
    sort_dir: SortDirection = Query(SortDirection.DESC, alias="sortDir"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    return _booking_page(db, params, status, space_id, lot_id, sort_by, sort_dir)


@router.get("/admin/bookings/spaces/{space_id}", response_model=Page[BookingOut], summary="Bookings of one space")
def list_space_bookings(
    space_id: int,
    status: Optional[BookingStatus] = None,
    sort_by: BookingSortField = Query(BookingSortField.START_TIME, alias="sortBy"),
    sort_dir: SortDirection = Query(SortDirection.DESC, alias="sortDir"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    return _booking_page(db, params, status, space_id, None, sort_by, sort_dir)


@router.get("/admin/bookings/lots/{lot_id}", response_model=Page[BookingOut], summary="Bookings of one lot")
def list_lot_bookings(
    lot_id: int,
    status: Optional[BookingStatus] = None,
    sort_by: BookingSortField = Query(BookingSortField.START_TIME, alias="sortBy"),
    sort_dir: SortDirection = Query(SortDirection.DESC, alias="sortDir"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    return _booking_page(db, params, status, None, lot_id, sort_by, sort_dir)


@router.post("/bookings/quote", response_model=QuoteOut, summary="Price a booking window")
def booking_quote(body: QuoteRequest, db: Session = Depends(get_db)):
    return quote_for(db, body.parking_space_id, None, body.vehicle_type, body.user_group,
                     body.start_time, body.end_time)


@router.get("/bookings/availability", response_model=bool, summary="Is the space free for [start, end)?")
def booking_availability(
    space_id: int = Query(..., alias="spaceId"),
    start_time: datetime = Query(..., alias="startTime"),
    end_time: datetime = Query(..., alias="endTime"),
    db: Session = Depends(get_db),
):
    if as_utc(end_time) <= as_utc(start_time):
        raise InvalidInterval("endTime must be after startTime")
    return is_available(db, space_id, start_time, end_time)


@router.post("/bookings", response_model=BookingOut, status_code=201, summary="Create a booking")
def create_booking(body: BookingCreate, db: Session = Depends(get_db)):
    return booking_service.create_booking(db, body)


@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return booking_service.get_booking(db, booking_id)


@router.put("/bookings/{booking_id}", response_model=BookingOut)
def update_booking(booking_id: int, body: BookingUpdate, db: Session = Depends(get_db)):
    return booking_service.update_booking(db, booking_id, body)


@router.delete("/bookings/{booking_id}", status_code=204)
def delete_booking(booking_id: int, db: Session = Depends(get_db)):
    booking_service.delete_booking(db, booking_id)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: int, db: Session = Depends(get_db)):
    return booking_service.cancel_booking(db, booking_id)


@router.post("/bookings/{booking_id}/start", response_model=BookingOut)
def start_booking(booking_id: int, db: Session = Depends(get_db)):
    return booking_service.start_booking(db, booking_id)


@router.post("/bookings/{booking_id}/complete", response_model=BookingOut)
def complete_booking(booking_id: int, db: Session = Depends(get_db)):
    return booking_service.complete_booking(db, booking_id)


@router.post("/bookings/{booking_id}/extend", response_model=BookingOut)
def extend_booking(booking_id: int, body: BookingExtend, db: Session = Depends(get_db)):
    return booking_service.extend_booking(db, booking_id, body.new_end_time)


# ── Admin maintenance ───────────────────────────────────────────────────────

@router.post("/admin/bookings/maintenance/update-expired", summary="Expire no-show bookings")
def update_expired_bookings(db: Session = Depends(get_db)):
    return {"updated": booking_service.expire_no_show_bookings(db), "status": "ok"}


@router.post("/admin/bookings/maintenance/update-completed", summary="Complete finished bookings")
def update_completed_bookings(db: Session = Depends(get_db)):
    return {"updated": booking_service.complete_finished_bookings(db), "status": "ok"}
