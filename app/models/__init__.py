# Parking pricing backend — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.parking import ParkingLot, ParkingSpace                  # noqa
from app.models.rate_plan import RatePlan                                # noqa
from app.models.rate_rule import RateRule                                # noqa
from app.models.rate_binding import LotRateAssignment, SpaceRateOverride # noqa
from app.models.booking import Booking                                   # noqa
from app.models.parking_session import ParkingSession                    # noqa
