# app/services/pricing_service.py
"""
Wires the quote engine to the database for request handlers and the
booking/session facade. Catalog outages are retried a bounded number of
times (QUOTE_RETRY_ATTEMPTS) before Unavailable reaches the caller. A failed
catalog read rolls the session back, so callers inside reserve_space pass
on_retry to take the space row lock again.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.services.quote_engine import Quote, QuoteEngine, quote_with_retry
from app.services.rate_catalog import SqlRateCatalog


def engine_for(db: Session) -> QuoteEngine:
    return QuoteEngine(SqlRateCatalog(db))


def quote_for(db: Session, parking_space_id: Optional[int], parking_lot_id: Optional[int],
              vehicle_type, user_group, start_time: datetime, end_time: datetime,
              on_retry: Optional[Callable[[], None]] = None) -> Quote:
    return quote_with_retry(
        engine_for(db),
        attempts=settings.QUOTE_RETRY_ATTEMPTS,
        backoff_seconds=settings.QUOTE_RETRY_BACKOFF_SECONDS,
        on_retry=on_retry,
        parking_space_id=parking_space_id,
        parking_lot_id=parking_lot_id,
        vehicle_type=vehicle_type,
        user_group=user_group,
        start_time=start_time,
        end_time=end_time,
    )
