# app/models/rate_binding.py
"""
Bindings of rate plans to the parking inventory.
LotRateAssignment binds a plan to a whole lot; SpaceRateOverride binds one to
a single space and always outranks lot assignments. Null effective bounds are
unbounded; the window is half-open [effective_from, effective_to).
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey
from app.database import Base


class LotRateAssignment(Base):
    __tablename__ = "lot_rate_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parking_lot_id = Column(Integer, ForeignKey("parking_lots.id"), nullable=False, index=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=False, index=True)
    priority = Column(Integer, default=0, nullable=False)
    effective_from = Column(DateTime)
    effective_to = Column(DateTime)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<LotRateAssignment {self.id} lot={self.parking_lot_id} plan={self.rate_plan_id}>"


class SpaceRateOverride(Base):
    __tablename__ = "space_rate_overrides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parking_space_id = Column(Integer, ForeignKey("parking_spaces.id"), nullable=False, index=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=False, index=True)
    priority = Column(Integer, default=0, nullable=False)
    effective_from = Column(DateTime)
    effective_to = Column(DateTime)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<SpaceRateOverride {self.id} space={self.parking_space_id} plan={self.rate_plan_id}>"
