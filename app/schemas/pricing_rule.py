from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, time
from decimal import Decimal


class PricingRuleBase(BaseModel):
    name: Optional[str] = None
    court_id: Optional[int] = None  # None = todas las canchas
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)  # 0 = domingo
    start_time: time
    end_time: time  # 00:00 = fin del día
    price_per_hour: Decimal = Field(ge=0)
    priority: int = 0
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_minute_precision(cls, value: time) -> time:
        if value.second or value.microsecond:
            raise ValueError("Rule times must have minute precision (HH:MM)")
        return value


class PricingRuleCreate(PricingRuleBase):
    pass


class PricingRuleUpdate(BaseModel):
    name: Optional[str] = None
    price_per_hour: Optional[Decimal] = Field(default=None, ge=0)
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class PricingRuleInDB(PricingRuleBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class PricingRuleResponse(PricingRuleInDB):
    pass


class PriceSliceResponse(BaseModel):
    start: datetime
    end: datetime
    price_per_hour: Decimal
    rule_id: int
    amount: Decimal


class PriceQuoteResponse(BaseModel):
    court_id: int
    start: datetime
    end: datetime
    total: Decimal
    slices: List[PriceSliceResponse]
