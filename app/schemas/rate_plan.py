# app/schemas/rate_plan.py
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from typing import Optional

from pydantic import Field, field_validator, model_validator

from app.config import settings
from app.models.enums import RatePlanType, TIME_BILLED_PLAN_TYPES
from app.schemas.common import CamelModel, Money, UtcDatetime


class RatePlanCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: RatePlanType
    currency: str = Field(settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    time_zone: str = settings.DEFAULT_TIME_ZONE
    grace_minutes: int = Field(0, ge=0)
    increment_minutes: int = Field(0, ge=0)
    daily_cap: Optional[Money] = Field(None, ge=0)
    active: bool = True

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        if not v.isalpha():
            raise ValueError("currency must be an ISO 4217 letter code")
        return v.upper()

    @field_validator("time_zone")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown IANA time zone: {v}")
        return v

    @model_validator(mode="after")
    def _increment_for_time_billing(self):
        if self.type in TIME_BILLED_PLAN_TYPES and self.increment_minutes <= 0:
            raise ValueError(f"incrementMinutes must be > 0 for {self.type.value} plans")
        return self


class RatePlanOut(CamelModel):
    id: int
    name: str
    type: RatePlanType
    currency: str
    time_zone: str
    grace_minutes: int
    increment_minutes: int
    daily_cap: Optional[Money]
    active: bool
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
