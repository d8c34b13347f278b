# app/services/lifecycle.py
"""
Status machines for bookings and sessions.

Booking:  UPCOMING → ACTIVE → COMPLETED
          UPCOMING → CANCELLED
          UPCOMING | ACTIVE → EXPIRED
Session:  ACTIVE → COMPLETED | CANCELLED | EXPIRED
"""

from app.models.enums import BookingStatus, SessionStatus
from app.services.pricing_errors import InvalidStatusTransition

BOOKING_TRANSITIONS = {
    BookingStatus.UPCOMING: {BookingStatus.ACTIVE, BookingStatus.CANCELLED, BookingStatus.EXPIRED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED, BookingStatus.EXPIRED},
}

SESSION_TRANSITIONS = {
    SessionStatus.ACTIVE: {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.EXPIRED},
}


def check_booking_transition(current: str, target: str):
    _check("Booking", BOOKING_TRANSITIONS, BookingStatus(current), BookingStatus(target))


def check_session_transition(current: str, target: str):
    _check("Session", SESSION_TRANSITIONS, SessionStatus(current), SessionStatus(target))


def _check(kind, table, current, target):
    if target not in table.get(current, set()):
        raise InvalidStatusTransition(f"{kind} cannot move from {current.value} to {target.value}")
