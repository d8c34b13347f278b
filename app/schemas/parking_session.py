# app/schemas/parking_session.py
from typing import Optional

from pydantic import Field

from app.models.enums import SessionStatus, UserGroup, VehicleType
from app.schemas.common import CamelModel, Money, UtcDatetime


class SessionStart(CamelModel):
    parking_space_id: int
    vehicle_plate: str = Field(..., min_length=1, max_length=20)
    vehicle_type: VehicleType
    user_group: UserGroup
    started_at: Optional[UtcDatetime] = None     # defaults to now
    end_time: Optional[UtcDatetime] = None       # expected end, open-ended if omitted
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None


class SessionUpdate(CamelModel):
    vehicle_plate: Optional[str] = Field(None, min_length=1, max_length=20)
    vehicle_type: Optional[VehicleType] = None
    user_group: Optional[UserGroup] = None
    end_time: Optional[UtcDatetime] = None
    status: Optional[SessionStatus] = None
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None


class SessionStop(CamelModel):
    end_time: Optional[UtcDatetime] = None       # defaults to now
    notes: Optional[str] = None


class SessionExtend(CamelModel):
    new_end_time: UtcDatetime


class SessionOut(CamelModel):
    id: int
    session_reference: str
    parking_space_id: int
    parking_lot_id: Optional[int]
    vehicle_plate: str
    vehicle_type: VehicleType
    user_group: UserGroup
    started_at: UtcDatetime
    expected_end_time: Optional[UtcDatetime]
    ended_at: Optional[UtcDatetime]
    billed_amount: Optional[Money]
    currency: Optional[str]
    price_breakdown: Optional[str]
    status: SessionStatus
    payment_method_id: Optional[str]
    notes: Optional[str]
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]
