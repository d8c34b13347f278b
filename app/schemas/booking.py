# app/schemas/booking.py
from typing import Optional

from pydantic import Field

from app.models.enums import BookingStatus, UserGroup, VehicleType
from app.schemas.common import CamelModel, Money, UtcDatetime


class BookingCreate(CamelModel):
    parking_space_id: int
    vehicle_plate: str = Field(..., min_length=1, max_length=20)
    vehicle_type: VehicleType
    user_group: UserGroup
    start_time: UtcDatetime
    end_time: UtcDatetime
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None


class BookingUpdate(CamelModel):
    vehicle_plate: Optional[str] = Field(None, min_length=1, max_length=20)
    vehicle_type: Optional[VehicleType] = None
    user_group: Optional[UserGroup] = None
    start_time: Optional[UtcDatetime] = None
    end_time: Optional[UtcDatetime] = None
    status: Optional[BookingStatus] = None
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None


class BookingExtend(CamelModel):
    new_end_time: UtcDatetime


class BookingOut(CamelModel):
    id: int
    booking_reference: str
    parking_space_id: int
    parking_lot_id: Optional[int]
    vehicle_plate: str
    vehicle_type: VehicleType
    user_group: UserGroup
    start_time: UtcDatetime
    end_time: UtcDatetime
    total_price: Money
    currency: str
    price_breakdown: Optional[str]
    status: BookingStatus
    payment_method_id: Optional[str]
    notes: Optional[str]
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]
