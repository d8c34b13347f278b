# app/services/booking_service.py
"""
Booking facade — reservations of a space for a fixed [start, end) window.

  - create: availability check + quote + persist under the space lock; the
    quoted amount becomes total_price and is never recomputed because a
    rate plan changed afterwards
  - extend / re-time: the new window is re-checked and re-quoted
  - cancel / start / complete: status machine in lifecycle.py
  - maintenance: no-show expiry and completion of finished bookings
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.models.booking import Booking
from app.models.enums import BookingSortField, BookingStatus, SortDirection
from app.schemas.booking import BookingCreate, BookingUpdate
from app.services.availability import ensure_available, relock_space, reserve_space
from app.services.lifecycle import check_booking_transition
from app.services.pricing_errors import InvalidInterval, InvalidStatusTransition, ResourceNotFound
from app.services.pricing_service import quote_for
from app.utils.logger import get_logger
from app.utils.time_utils import as_utc, to_db, utc_now

logger = get_logger(__name__)


def _reference() -> str:
    return f"BK-{uuid.uuid4().hex[:10].upper()}"


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise ResourceNotFound(f"Booking {booking_id} not found")
    return booking


_SORT_COLUMNS = {
    BookingSortField.START_TIME: Booking.start_time,
    BookingSortField.END_TIME: Booking.end_time,
    BookingSortField.TOTAL_PRICE: Booking.total_price,
    BookingSortField.STATUS: Booking.status,
    BookingSortField.CREATED_AT: Booking.created_at,
}


def list_bookings(db: Session, page: int, size: int, status: Optional[str] = None,
                  space_id: Optional[int] = None, lot_id: Optional[int] = None,
                  sort_by: BookingSortField = BookingSortField.START_TIME,
                  sort_dir: SortDirection = SortDirection.DESC) -> Tuple[List[Booking], int]:
    q = db.query(Booking)
    if status:
        q = q.filter(Booking.status == status)
    if space_id is not None:
        q = q.filter(Booking.parking_space_id == space_id)
    if lot_id is not None:
        q = q.filter(Booking.parking_lot_id == lot_id)
    total = q.count()

    column = _SORT_COLUMNS[BookingSortField(sort_by)]
    if SortDirection(sort_dir) == SortDirection.ASC:
        order = (column.asc(), Booking.id.asc())
    else:
        order = (column.desc(), Booking.id.desc())
    items = q.order_by(*order).offset(page * size).limit(size).all()
    return items, total


def create_booking(db: Session, body: BookingCreate) -> Booking:
    start, end = as_utc(body.start_time), as_utc(body.end_time)
    if end <= start:
        raise InvalidInterval("endTime must be after startTime")

    space_id = body.parking_space_id
    with reserve_space(db, space_id) as space:
        lot_id = space.parking_lot_id
        ensure_available(db, space_id, start, end)
        quote = quote_for(db, space_id, lot_id, body.vehicle_type, body.user_group, start, end,
                          on_retry=lambda: relock_space(db, space_id, start, end))

        now = datetime.utcnow()
        booking = Booking(
            booking_reference=_reference(),
            parking_space_id=space_id,
            parking_lot_id=lot_id,
            vehicle_plate=body.vehicle_plate.upper(),
            vehicle_type=body.vehicle_type.value,
            user_group=body.user_group.value,
            start_time=to_db(start),
            end_time=to_db(end),
            total_price=quote.amount,
            currency=quote.currency,
            price_breakdown=quote.breakdown,
            status=BookingStatus.UPCOMING.value,
            payment_method_id=body.payment_method_id,
            notes=body.notes,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)

    logger.info(f"[BOOKING] {booking.booking_reference} space={booking.parking_space_id} "
                f"{start.isoformat()}→{end.isoformat()} price={quote.amount} {quote.currency}")
    return booking


def _requote(db: Session, booking: Booking, start: datetime, end: datetime, vehicle_type, user_group):
    """
    Re-check and re-price `booking` for a new window. Must run inside
    reserve_space for the booking's space; nothing is committed here.
    """
    if end <= start:
        raise InvalidInterval("endTime must be after startTime")
    space_id, booking_id = booking.parking_space_id, booking.id
    ensure_available(db, space_id, start, end, exclude_booking_id=booking_id)
    quote = quote_for(
        db, space_id, booking.parking_lot_id, vehicle_type, user_group, start, end,
        on_retry=lambda: relock_space(db, space_id, start, end, exclude_booking_id=booking_id),
    )
    booking.start_time = to_db(start)
    booking.end_time = to_db(end)
    booking.vehicle_type = getattr(vehicle_type, "value", vehicle_type)
    booking.user_group = getattr(user_group, "value", user_group)
    booking.total_price = quote.amount
    booking.currency = quote.currency
    booking.price_breakdown = quote.breakdown
    booking.updated_at = datetime.utcnow()


def _apply_edits(booking: Booking, body: BookingUpdate):
    if body.status is not None and body.status.value != booking.status:
        booking.status = body.status.value
    if body.vehicle_plate is not None:
        booking.vehicle_plate = body.vehicle_plate.upper()
    if body.payment_method_id is not None:
        booking.payment_method_id = body.payment_method_id
    if body.notes is not None:
        booking.notes = body.notes
    booking.updated_at = datetime.utcnow()


def update_booking(db: Session, booking_id: int, body: BookingUpdate) -> Booking:
    """All requested changes are validated first and land in one commit, or none do."""
    booking = get_booking(db, booking_id)

    if body.status is not None and body.status.value != booking.status:
        check_booking_transition(booking.status, body.status.value)

    reprices = any(v is not None for v in (body.start_time, body.end_time, body.vehicle_type, body.user_group))
    if not reprices:
        _apply_edits(booking, body)
        db.commit()
        db.refresh(booking)
        return booking

    if booking.status != BookingStatus.UPCOMING.value:
        raise InvalidStatusTransition(
            f"Booking {booking.booking_reference} is {booking.status}; only UPCOMING bookings can be re-timed"
        )
    start = as_utc(body.start_time or booking.start_time)
    end = as_utc(body.end_time or booking.end_time)
    vehicle_type = body.vehicle_type or booking.vehicle_type
    user_group = body.user_group or booking.user_group

    with reserve_space(db, booking.parking_space_id):
        _requote(db, booking, start, end, vehicle_type, user_group)
        _apply_edits(booking, body)
        db.commit()
    db.refresh(booking)
    logger.info(f"[BOOKING] {booking.booking_reference} re-timed {start.isoformat()}→{end.isoformat()} "
                f"price={booking.total_price} {booking.currency}")
    return booking


def extend_booking(db: Session, booking_id: int, new_end_time: datetime) -> Booking:
    booking = get_booking(db, booking_id)
    if booking.status not in (BookingStatus.UPCOMING.value, BookingStatus.ACTIVE.value):
        raise InvalidStatusTransition(f"Booking {booking.booking_reference} is {booking.status} and cannot be extended")
    new_end = as_utc(new_end_time)
    if new_end <= as_utc(booking.end_time):
        raise InvalidInterval("newEndTime must be after the current endTime")

    with reserve_space(db, booking.parking_space_id):
        _requote(db, booking, as_utc(booking.start_time), new_end, booking.vehicle_type, booking.user_group)
        db.commit()
    db.refresh(booking)
    logger.info(f"[BOOKING] {booking.booking_reference} extended to {new_end.isoformat()} "
                f"price={booking.total_price} {booking.currency}")
    return booking


def _transition(db: Session, booking_id: int, target: BookingStatus) -> Booking:
    booking = get_booking(db, booking_id)
    check_booking_transition(booking.status, target.value)
    booking.status = target.value
    booking.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(booking)
    logger.info(f"[BOOKING] {booking.booking_reference} → {target.value}")
    return booking


def cancel_booking(db: Session, booking_id: int) -> Booking:
    return _transition(db, booking_id, BookingStatus.CANCELLED)


def start_booking(db: Session, booking_id: int) -> Booking:
    return _transition(db, booking_id, BookingStatus.ACTIVE)


def complete_booking(db: Session, booking_id: int) -> Booking:
    return _transition(db, booking_id, BookingStatus.COMPLETED)


def delete_booking(db: Session, booking_id: int):
    booking = get_booking(db, booking_id)
    db.delete(booking)
    db.commit()
    logger.info(f"[BOOKING] {booking.booking_reference} deleted")


def expire_no_show_bookings(db: Session, now: Optional[datetime] = None) -> int:
    """UPCOMING bookings never started within BOOKING_NO_SHOW_MINUTES of their start → EXPIRED."""
    cutoff = to_db(now or utc_now()) - timedelta(minutes=settings.BOOKING_NO_SHOW_MINUTES)
    rows = db.query(Booking).filter(
        Booking.status == BookingStatus.UPCOMING.value,
        Booking.start_time <= cutoff,
    ).all()
    for booking in rows:
        booking.status = BookingStatus.EXPIRED.value
        booking.updated_at = datetime.utcnow()
    db.commit()
    if rows:
        logger.info(f"[MAINT] expired {len(rows)} no-show bookings")
    return len(rows)


def complete_finished_bookings(db: Session, now: Optional[datetime] = None) -> int:
    """ACTIVE bookings whose end has passed → COMPLETED."""
    cutoff = to_db(now or utc_now())
    rows = db.query(Booking).filter(
        Booking.status == BookingStatus.ACTIVE.value,
        Booking.end_time <= cutoff,
    ).all()
    for booking in rows:
        booking.status = BookingStatus.COMPLETED.value
        booking.updated_at = datetime.utcnow()
    db.commit()
    if rows:
        logger.info(f"[MAINT] completed {len(rows)} finished bookings")
    return len(rows)
