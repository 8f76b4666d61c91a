from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import List, Optional

from app.database import get_db
from app.crud import court as crud
from app.schemas.availability import CourtDayAvailabilityResponse
from app.schemas.court import CourtResponse, CourtCreate, CourtUpdate
from app.schemas.pricing_rule import PriceQuoteResponse
from app.services import availability, pricing
from app.services.auth import require_admin
from app.models.user import User

router = APIRouter()


@router.post("/", response_model=CourtResponse)
def create_court(
    court: CourtCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return crud.create_court(db=db, court=court)


@router.get("/", response_model=List[CourtResponse])
def read_courts(
    skip: int = 0,
    limit: int = 100,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    return crud.get_courts(db, skip=skip, limit=limit, is_active=is_active)


@router.get("/{court_id}", response_model=CourtResponse)
def read_court(court_id: int, db: Session = Depends(get_db)):
    db_court = crud.get_court(db, court_id=court_id)
    if db_court is None:
        raise HTTPException(status_code=404, detail="Court not found")
    return db_court


@router.put("/{court_id}", response_model=CourtResponse)
def update_court(
    court_id: int,
    court: CourtUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    db_court = crud.update_court(db=db, court_id=court_id, court=court)
    if db_court is None:
        raise HTTPException(status_code=404, detail="Court not found")
    return db_court


@router.get("/{court_id}/availability", response_model=CourtDayAvailabilityResponse)
def read_court_availability(court_id: int, day: date, db: Session = Depends(get_db)):
    slots = availability.get_day_availability(db, court_id, day)
    return {"court_id": court_id, "date": day, "slots": slots}


@router.get("/{court_id}/quote", response_model=PriceQuoteResponse)
def quote_price(
    court_id: int, start: datetime, end: datetime, db: Session = Depends(get_db)
):
    quote = pricing.resolve_price(db, court_id, start, end)
    return PriceQuoteResponse(
        court_id=quote.court_id,
        start=quote.start,
        end=quote.end,
        total=quote.total,
        slices=[
            {
                "start": s.start,
                "end": s.end,
                "price_per_hour": s.price_per_hour,
                "rule_id": s.rule_id,
                "amount": s.amount,
            }
            for s in quote.slices
        ],
    )
