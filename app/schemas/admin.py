from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from app.enums.booking_status import BookingStatus
from app.schemas.booking import BookingResponse


class AdminBookingPatch(BaseModel):
    court_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[BookingStatus] = None


class AdminUpdateOptions(BaseModel):
    force_overwrite: bool = False
    recalculate_price: bool = False
    refund_to_wallet: bool = False
    charge_extra_to_wallet: bool = False
    admin_note: Optional[str] = None


class AdminUpdateRequest(BaseModel):
    patch: AdminBookingPatch = AdminBookingPatch()
    options: AdminUpdateOptions = AdminUpdateOptions()


class PriceChangeResponse(BaseModel):
    old_price: Decimal
    new_price: Decimal
    difference: Decimal
    refunded: Decimal = Decimal("0")
    charged: Decimal = Decimal("0")
    pending_collection: Decimal = Decimal("0")
    settled: bool = False


class ConflictResponse(BaseModel):
    booking_id: int
    booking_code: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    overwritten: bool = False
    refund_amount: Decimal = Decimal("0")


class AdminUpdateResponse(BaseModel):
    booking: BookingResponse
    price_change: Optional[PriceChangeResponse] = None
    conflicts: List[ConflictResponse] = []
    admin_action_id: Optional[int] = None
