# app/models/rate_plan.py
"""
Rate plans: named pricing policies.
Plans are soft-disabled via active=False and never hard-deleted while an
assignment or override still references them.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric
from sqlalchemy.orm import relationship
from app.database import Base


class RatePlan(Base):
    __tablename__ = "rate_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    type = Column(String(30), nullable=False)          # RatePlanType value
    currency = Column(String(3), nullable=False)       # ISO 4217
    time_zone = Column(String(64), nullable=False)     # IANA name
    grace_minutes = Column(Integer, default=0, nullable=False)
    increment_minutes = Column(Integer, default=0, nullable=False)
    daily_cap = Column(Numeric(14, 3))
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    rules = relationship("RateRule", back_populates="plan", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<RatePlan {self.id} {self.name} type={self.type} active={self.active}>"
