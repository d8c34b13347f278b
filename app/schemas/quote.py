# app/schemas/quote.py
from typing import Optional

from pydantic import model_validator

from app.models.enums import UserGroup, VehicleType
from app.schemas.common import CamelModel, Money, UtcDatetime


class QuoteRequest(CamelModel):
    parking_space_id: int
    vehicle_type: VehicleType
    user_group: UserGroup
    start_time: UtcDatetime
    end_time: UtcDatetime


class PricingQuoteRequest(CamelModel):
    parking_lot_id: Optional[int] = None
    parking_space_id: Optional[int] = None
    vehicle_type: VehicleType
    user_group: UserGroup
    start_time: UtcDatetime
    end_time: UtcDatetime

    @model_validator(mode="after")
    def _target(self):
        if self.parking_lot_id is None and self.parking_space_id is None:
            raise ValueError("either parkingLotId or parkingSpaceId is required")
        return self


class QuoteOut(CamelModel):
    currency: str
    amount: Money
    breakdown: str
