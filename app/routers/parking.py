# app/routers/parking.py
"""Parking lots and spaces: the inventory rate plans are bound to."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.parking import ParkingLot, ParkingSpace
from app.routers.pagination import PageParams, page_params
from app.schemas.common import Page
from app.schemas.parking import ParkingLotCreate, ParkingLotOut, ParkingSpaceCreate, ParkingSpaceOut

router = APIRouter()


@router.get("/parking-lots", response_model=Page[ParkingLotOut])
def list_lots(params: PageParams = Depends(page_params), db: Session = Depends(get_db)):
    q = db.query(ParkingLot)
    total = q.count()
    rows = q.order_by(ParkingLot.id).offset(params.offset).limit(params.size).all()
    return Page[ParkingLotOut].build([ParkingLotOut.model_validate(r) for r in rows], params.page, params.size, total)


@router.post("/parking-lots", response_model=ParkingLotOut, status_code=201)
def create_lot(body: ParkingLotCreate, db: Session = Depends(get_db)):
    now = datetime.utcnow()
    lot = ParkingLot(name=body.name, address=body.address, status=body.status, created_at=now, updated_at=now)
    db.add(lot)
    db.commit()
    db.refresh(lot)
    return lot


@router.get("/parking-lots/{lot_id}", response_model=ParkingLotOut)
def get_lot(lot_id: int, db: Session = Depends(get_db)):
    lot = db.query(ParkingLot).filter(ParkingLot.id == lot_id).first()
    if not lot:
        raise HTTPException(status_code=404, detail=f"Parking lot {lot_id} not found")
    return lot


@router.get("/parking-spaces", response_model=Page[ParkingSpaceOut])
def list_spaces(lot_id: Optional[int] = None, params: PageParams = Depends(page_params),
                db: Session = Depends(get_db)):
    q = db.query(ParkingSpace)
    if lot_id is not None:
        q = q.filter(ParkingSpace.parking_lot_id == lot_id)
    total = q.count()
    rows = q.order_by(ParkingSpace.id).offset(params.offset).limit(params.size).all()
    return Page[ParkingSpaceOut].build([ParkingSpaceOut.model_validate(r) for r in rows],
                                       params.page, params.size, total)


@router.post("/parking-spaces", response_model=ParkingSpaceOut, status_code=201)
def create_space(body: ParkingSpaceCreate, db: Session = Depends(get_db)):
    if not db.query(ParkingLot).filter(ParkingLot.id == body.parking_lot_id).first():
        raise HTTPException(status_code=404, detail=f"Parking lot {body.parking_lot_id} not found")
    now = datetime.utcnow()
    space = ParkingSpace(label=body.label, parking_lot_id=body.parking_lot_id,
                         vehicle_type=body.vehicle_type.value, is_available=body.is_available,
                         created_at=now, updated_at=now)
    db.add(space)
    db.commit()
    db.refresh(space)
    return space


@router.get("/parking-spaces/{space_id}", response_model=ParkingSpaceOut)
def get_space(space_id: int, db: Session = Depends(get_db)):
    space = db.query(ParkingSpace).filter(ParkingSpace.id == space_id).first()
    if not space:
        raise HTTPException(status_code=404, detail=f"Parking space {space_id} not found")
    return space
