# app/schemas/rate_binding.py
from typing import Optional

from pydantic import model_validator

from app.schemas.common import CamelModel, UtcDatetime


class _EffectiveWindow(CamelModel):
    rate_plan_id: int
    priority: int = 0
    effective_from: Optional[UtcDatetime] = None
    effective_to: Optional[UtcDatetime] = None

    @model_validator(mode="after")
    def _ordered(self):
        if self.effective_from and self.effective_to and self.effective_to <= self.effective_from:
            raise ValueError("effectiveTo must be after effectiveFrom")
        return self


class LotRateAssignmentCreate(_EffectiveWindow):
    parking_lot_id: int


class SpaceRateOverrideCreate(_EffectiveWindow):
    parking_space_id: int


class LotRateAssignmentOut(LotRateAssignmentCreate):
    id: int
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]


class SpaceRateOverrideOut(SpaceRateOverrideCreate):
    id: int
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]
