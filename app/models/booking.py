# app/models/booking.py
"""
Bookings — reservations of a space for a fixed [start_time, end_time) window.
total_price is locked in when the booking is created (or extended).
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, ForeignKey
from app.database import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_reference = Column(String(20), unique=True, nullable=False)
    parking_space_id = Column(Integer, ForeignKey("parking_spaces.id"), nullable=False, index=True)
    parking_lot_id = Column(Integer, index=True)
    vehicle_plate = Column(String(20), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)
    user_group = Column(String(20), nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    total_price = Column(Numeric(14, 3), nullable=False)
    currency = Column(String(3), nullable=False)
    price_breakdown = Column(Text)
    status = Column(String(20), nullable=False, index=True)
    payment_method_id = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Booking {self.booking_reference} space={self.parking_space_id} status={self.status}>"
