# app/schemas/parking.py
from typing import Optional

from pydantic import Field

from app.models.enums import VehicleType
from app.schemas.common import CamelModel, UtcDatetime


class ParkingLotCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    status: str = "ACTIVE"


class ParkingLotOut(ParkingLotCreate):
    id: int
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]


class ParkingSpaceCreate(CamelModel):
    label: str = Field(..., min_length=1, max_length=50)
    parking_lot_id: int
    vehicle_type: VehicleType = VehicleType.CAR
    is_available: bool = True


class ParkingSpaceOut(ParkingSpaceCreate):
    id: int
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]
