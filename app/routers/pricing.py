# app/routers/pricing.py
"""Generalised quote endpoint: price a lot or a specific space."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.quote import PricingQuoteRequest, QuoteOut
from app.services.pricing_service import quote_for

router = APIRouter()


@router.post("/pricing/quote", response_model=QuoteOut, summary="Quote by lot or space")
def pricing_quote(body: PricingQuoteRequest, db: Session = Depends(get_db)):
    """
    With parkingSpaceId, space overrides are considered before lot assignments.
    With only parkingLotId, the lot's assignments decide.
    """
    return quote_for(db, body.parking_space_id, body.parking_lot_id, body.vehicle_type,
                     body.user_group, body.start_time, body.end_time)
