# app/models/parking.py
"""
Parking lots and their spaces.
A space belongs to exactly one lot; the lot id is what lot-level rate
assignments are keyed on.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class ParkingLot(Base):
    __tablename__ = "parking_lots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=False)
    status = Column(String(30), default="ACTIVE", nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    spaces = relationship("ParkingSpace", back_populates="lot", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ParkingLot {self.id} name={self.name}>"


class ParkingSpace(Base):
    __tablename__ = "parking_spaces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(50), nullable=False)
    parking_lot_id = Column(Integer, ForeignKey("parking_lots.id"), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)   # CAR | MOTORCYCLE | TRUCK | BUS
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    lot = relationship("ParkingLot", back_populates="spaces")

    def __repr__(self):
        return f"<ParkingSpace {self.id} label={self.label} lot={self.parking_lot_id}>"
