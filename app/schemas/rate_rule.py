# app/schemas/rate_rule.py
from typing import Optional

from pydantic import Field, field_validator, model_validator

from app.models.enums import DayOfWeek, UserGroup, VehicleType
from app.schemas.common import CamelModel, Money, UtcDatetime
from app.services.rule_matcher import MINUTES_PER_DAY, parse_clock


class RateRuleCreate(CamelModel):
    rate_plan_id: int
    start_minute: Optional[int] = Field(None, ge=0, le=MINUTES_PER_DAY)
    end_minute: Optional[int] = Field(None, ge=0, le=MINUTES_PER_DAY)
    start_time: Optional[str] = None     # "HH:MM"
    end_time: Optional[str] = None
    day_of_week: Optional[DayOfWeek] = None
    vehicle_type: Optional[VehicleType] = None
    user_group: Optional[UserGroup] = None
    price_per_hour: Optional[Money] = Field(None, ge=0)
    price_flat: Optional[Money] = Field(None, ge=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def _clock(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            minutes = parse_clock(v)
        except ValueError:
            raise ValueError(f"expected HH:MM, got {v!r}")
        return f"{minutes // 60:02d}:{minutes % 60:02d}"

    @model_validator(mode="after")
    def _consistent(self):
        if (self.price_per_hour is None) == (self.price_flat is None):
            raise ValueError("exactly one of pricePerHour or priceFlat must be set")

        minutes = (self.start_minute, self.end_minute)
        clock = (self.start_time, self.end_time)
        if any(v is not None for v in minutes) and any(v is not None for v in clock):
            raise ValueError("use either startMinute/endMinute or startTime/endTime, not both")
        for pair, names in ((minutes, "startMinute/endMinute"), (clock, "startTime/endTime")):
            if (pair[0] is None) != (pair[1] is None):
                raise ValueError(f"{names} must be given together")

        window = minutes if self.start_minute is not None else clock
        if window[0] is not None:
            start = window[0] if isinstance(window[0], int) else parse_clock(window[0])
            end = window[1] if isinstance(window[1], int) else parse_clock(window[1])
            if start % MINUTES_PER_DAY == end % MINUTES_PER_DAY:
                raise ValueError("time window start and end must differ")
        return self


class RateRuleOut(CamelModel):
    id: int
    rate_plan_id: int
    start_minute: Optional[int]
    end_minute: Optional[int]
    start_time: Optional[str]
    end_time: Optional[str]
    day_of_week: Optional[DayOfWeek]
    vehicle_type: Optional[VehicleType]
    user_group: Optional[UserGroup]
    price_per_hour: Optional[Money]
    price_flat: Optional[Money]
    created_at: Optional[UtcDatetime]
    updated_at: Optional[UtcDatetime]
