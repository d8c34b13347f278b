# app/services/availability.py
"""
Space availability and the per-space serialization point.

A space can hold at most one non-terminal booking or session over any
instant. Intervals are half-open [start, end); an end of None is unbounded
(an open session with no expected end).

Creation paths hold the space's lock across "check availability → quote →
persist → commit". Inside one process that is a threading.Lock per space;
across processes the space row is locked with SELECT ... FOR UPDATE
(PostgreSQL; a no-op on SQLite).
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.enums import TERMINAL_BOOKING_STATUSES, TERMINAL_SESSION_STATUSES
from app.models.parking import ParkingSpace
from app.models.parking_session import ParkingSession
from app.services.pricing_errors import AvailabilityConflict, ResourceNotFound
from app.utils.logger import get_logger
from app.utils.time_utils import to_db

logger = get_logger(__name__)


class SpaceLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def lock_for(self, space_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(space_id, threading.Lock())

    @contextmanager
    def hold(self, space_id: int):
        with self.lock_for(space_id):
            yield


space_locks = SpaceLocks()


def intervals_overlap(a_start: datetime, a_end: Optional[datetime],
                      b_start: datetime, b_end: Optional[datetime]) -> bool:
    """Half-open overlap; None ends are unbounded."""
    return (b_end is None or a_start < b_end) and (a_end is None or b_start < a_end)


def _lock_space_row(db: Session, space_id: int) -> ParkingSpace:
    space = (
        db.query(ParkingSpace)
        .filter(ParkingSpace.id == space_id)
        .with_for_update()
        .first()
    )
    if space is None:
        raise ResourceNotFound(f"Parking space {space_id} not found")
    return space


@contextmanager
def reserve_space(db: Session, space_id: int):
    """Hold the space for a check-and-persist sequence. Yields the locked space."""
    with space_locks.hold(space_id):
        space = _lock_space_row(db, space_id)
        try:
            yield space
        except Exception:
            db.rollback()
            raise


def relock_space(db: Session, space_id: int, start: datetime, end: Optional[datetime], **exclude):
    """
    Re-take the row lock after a rollback inside reserve_space, then re-check
    the window: another process may have claimed it while the lock was off.
    The caller still holds the in-process lock.
    """
    logger.info(f"[AVAIL] space={space_id} re-locking after rollback")
    _lock_space_row(db, space_id)
    ensure_available(db, space_id, start, end, **exclude)


def find_conflicts(db: Session, space_id: int, start: datetime, end: Optional[datetime],
                   exclude_booking_id: Optional[int] = None,
                   exclude_session_id: Optional[int] = None) -> List[str]:
    """References of live bookings/sessions overlapping [start, end) on the space."""
    start_db, end_db = to_db(start), to_db(end)

    bq = db.query(Booking).filter(
        Booking.parking_space_id == space_id,
        Booking.status.notin_([s.value for s in TERMINAL_BOOKING_STATUSES]),
        Booking.end_time > start_db,
    )
    if end_db is not None:
        bq = bq.filter(Booking.start_time < end_db)
    if exclude_booking_id is not None:
        bq = bq.filter(Booking.id != exclude_booking_id)

    sq = db.query(ParkingSession).filter(
        ParkingSession.parking_space_id == space_id,
        ParkingSession.status.notin_([s.value for s in TERMINAL_SESSION_STATUSES]),
        or_(ParkingSession.expected_end_time == None, ParkingSession.expected_end_time > start_db),  # noqa: E711
    )
    if end_db is not None:
        sq = sq.filter(ParkingSession.started_at < end_db)
    if exclude_session_id is not None:
        sq = sq.filter(ParkingSession.id != exclude_session_id)

    return [b.booking_reference for b in bq.all()] + [s.session_reference for s in sq.all()]


def is_available(db: Session, space_id: int, start: datetime, end: Optional[datetime], **exclude) -> bool:
    return not find_conflicts(db, space_id, start, end, **exclude)


def ensure_available(db: Session, space_id: int, start: datetime, end: Optional[datetime], **exclude):
    conflicts = find_conflicts(db, space_id, start, end, **exclude)
    if conflicts:
        logger.info(f"[AVAIL] space={space_id} conflict with {conflicts}")
        raise AvailabilityConflict(
            f"Parking space {space_id} is already booked for that time ({', '.join(conflicts)})"
        )
