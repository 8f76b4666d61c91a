from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List


class SlotAvailabilityResponse(BaseModel):
    time: str  # "HH:MM-HH:MM"
    start: datetime
    end: datetime
    available: bool
    price: Optional[Decimal] = None


class CourtDayAvailabilityResponse(BaseModel):
    court_id: int
    date: date
    slots: List[SlotAvailabilityResponse]
