# scripts/setup/seed_rates.py
"""
Seed a demo lot, spaces and rate configuration.
  - "Standard hourly" PER_HOUR plan (ALL, 15 min grace, 15 min increments,
    daily cap 1500) assigned to the lot
  - evening discount and resident rules
  - a FLAT_PER_ENTRY "Event flat" plan overriding space A-01
Usage: python scripts/setup/seed_rates.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from datetime import datetime
from decimal import Decimal

from app.database import SessionLocal, create_tables
from app.models.enums import RatePlanType, UserGroup, VehicleType
from app.models.parking import ParkingLot, ParkingSpace
from app.models.rate_binding import LotRateAssignment, SpaceRateOverride
from app.models.rate_plan import RatePlan
from app.models.rate_rule import RateRule


def main():
    create_tables()
    db = SessionLocal()
    now = datetime.utcnow()
    try:
        lot = ParkingLot(name="Central Garage", address="Rruga e Durrësit 1, Tirana",
                         created_at=now, updated_at=now)
        db.add(lot)
        db.flush()
        spaces = [
            ParkingSpace(label=f"A-{i:02d}", parking_lot_id=lot.id, vehicle_type=VehicleType.CAR.value,
                         created_at=now, updated_at=now)
            for i in range(1, 6)
        ]
        db.add_all(spaces)

        hourly = RatePlan(name="Standard hourly", type=RatePlanType.PER_HOUR.value, currency="ALL",
                          time_zone="Europe/Tirane", grace_minutes=15, increment_minutes=15,
                          daily_cap=Decimal("1500"), active=True, created_at=now, updated_at=now)
        flat = RatePlan(name="Event flat", type=RatePlanType.FLAT_PER_ENTRY.value, currency="ALL",
                        time_zone="Europe/Tirane", grace_minutes=0, increment_minutes=0,
                        active=True, created_at=now, updated_at=now)
        db.add_all([hourly, flat])
        db.flush()

        db.add_all([
            RateRule(rate_plan_id=hourly.id, price_per_hour=Decimal("100"), created_at=now, updated_at=now),
            RateRule(rate_plan_id=hourly.id, start_time="18:00", end_time="08:00",
                     price_per_hour=Decimal("50"), created_at=now, updated_at=now),
            RateRule(rate_plan_id=hourly.id, user_group=UserGroup.RESIDENT.value, start_time="08:00",
                     end_time="18:00", price_per_hour=Decimal("40"), created_at=now, updated_at=now),
            RateRule(rate_plan_id=hourly.id, user_group=UserGroup.RESIDENT.value, start_time="18:00",
                     end_time="08:00", price_per_hour=Decimal("20"), created_at=now, updated_at=now),
            RateRule(rate_plan_id=flat.id, price_flat=Decimal("200"), created_at=now, updated_at=now),
        ])
        db.flush()

        db.add(LotRateAssignment(parking_lot_id=lot.id, rate_plan_id=hourly.id, priority=10,
                                 created_at=now, updated_at=now))
        db.add(SpaceRateOverride(parking_space_id=spaces[0].id, rate_plan_id=flat.id, priority=0,
                                 created_at=now, updated_at=now))
        db.commit()

        print(f"✅ Seeded lot #{lot.id} with spaces {[s.id for s in spaces]}")
        print(f"   plan #{hourly.id} '{hourly.name}' → lot, plan #{flat.id} '{flat.name}' → space {spaces[0].id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
