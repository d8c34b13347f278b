# app/models/enums.py
"""
Enumerations shared by models, schemas and the pricing engine.
Stored as plain strings in the database.
"""

from enum import Enum


class RatePlanType(str, Enum):
    FLAT_PER_ENTRY = "FLAT_PER_ENTRY"
    PER_HOUR = "PER_HOUR"
    TIERED = "TIERED"
    TIME_OF_DAY = "TIME_OF_DAY"
    DAY_OF_WEEK = "DAY_OF_WEEK"
    FREE = "FREE"
    DYNAMIC = "DYNAMIC"


# Plan types billed by elapsed time; these require incrementMinutes > 0
TIME_BILLED_PLAN_TYPES = {
    RatePlanType.PER_HOUR,
    RatePlanType.TIERED,
    RatePlanType.TIME_OF_DAY,
    RatePlanType.DAY_OF_WEEK,
}


class VehicleType(str, Enum):
    CAR = "CAR"
    MOTORCYCLE = "MOTORCYCLE"
    TRUCK = "TRUCK"
    BUS = "BUS"


class UserGroup(str, Enum):
    PUBLIC = "PUBLIC"
    RESIDENT = "RESIDENT"
    DISABLED = "DISABLED"
    STAFF = "STAFF"
    STUDENT = "STUDENT"


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        """Map datetime.weekday() (Monday == 0) to a DayOfWeek."""
        return list(cls)[weekday]


class BookingStatus(str, Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


TERMINAL_BOOKING_STATUSES = {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.EXPIRED}
TERMINAL_SESSION_STATUSES = {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.EXPIRED}


# List ordering (sortBy / sortDir query parameters)

class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BookingSortField(str, Enum):
    START_TIME = "startTime"
    END_TIME = "endTime"
    TOTAL_PRICE = "totalPrice"
    STATUS = "status"
    CREATED_AT = "createdAt"


class SessionSortField(str, Enum):
    STARTED_AT = "startedAt"
    ENDED_AT = "endedAt"
    BILLED_AMOUNT = "billedAmount"
    STATUS = "status"
    CREATED_AT = "createdAt"
