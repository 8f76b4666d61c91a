from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class CourtBase(BaseModel):
    name: str
    description: Optional[str] = None
    price_per_hour: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True


class CourtCreate(CourtBase):
    pass


class CourtUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price_per_hour: Optional[Decimal] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class CourtInDB(CourtBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class CourtResponse(CourtInDB):
    pass
