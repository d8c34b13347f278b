# app/models/parking_session.py
"""
Parking sessions — open-ended occupancy of a space.
billed_amount is settled once, at stop time, by quoting [started_at, ended_at).
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, ForeignKey
from app.database import Base


class ParkingSession(Base):
    __tablename__ = "parking_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_reference = Column(String(20), unique=True, nullable=False)
    parking_space_id = Column(Integer, ForeignKey("parking_spaces.id"), nullable=False, index=True)
    parking_lot_id = Column(Integer, index=True)
    vehicle_plate = Column(String(20), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)
    user_group = Column(String(20), nullable=False)
    started_at = Column(DateTime, nullable=False, index=True)
    expected_end_time = Column(DateTime)     # optional, moved by extend
    ended_at = Column(DateTime)
    billed_amount = Column(Numeric(14, 3))
    currency = Column(String(3))
    price_breakdown = Column(Text)
    status = Column(String(20), nullable=False, index=True)
    payment_method_id = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<ParkingSession {self.session_reference} space={self.parking_space_id} status={self.status}>"
