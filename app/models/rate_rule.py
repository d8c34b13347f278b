# app/models/rate_rule.py
"""
Rate rules — conditional prices owned by a rate plan.
Unset scoping columns are wildcards. Exactly one of price_per_hour /
price_flat is set.
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class RateRule(Base):
    __tablename__ = "rate_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    start_minute = Column(Integer)       # minute of day, 0..1440
    end_minute = Column(Integer)
    start_time = Column(String(5))       # "HH:MM", exclusive with start_minute
    end_time = Column(String(5))
    day_of_week = Column(String(10))     # MONDAY..SUNDAY
    vehicle_type = Column(String(20))
    user_group = Column(String(20))
    price_per_hour = Column(Numeric(14, 3))
    price_flat = Column(Numeric(14, 3))
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    plan = relationship("RatePlan", back_populates="rules")

    def __repr__(self):
        return f"<RateRule {self.id} plan={self.rate_plan_id}>"
