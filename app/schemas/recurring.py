from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict

from app.enums.booking_status import BookingGroupStatus
from app.enums.payment import PaymentMethod
from app.enums.recurrence_pattern import RecurrencePattern
from app.schemas.booking import BookingResponse


class RecurringBookingRequest(BaseModel):
    court_id: int
    start_time: datetime  # Primera ocurrencia
    end_time: datetime
    pattern: RecurrencePattern = RecurrencePattern.WEEKLY
    occurrences: int = Field(ge=1, le=52)
    preview_only: bool = False
    payment_method: Optional[PaymentMethod] = None


class SkippedOccurrenceResponse(BaseModel):
    date: date
    reason: str
    conflicting_codes: List[str] = []


class PreviewOccurrenceResponse(BaseModel):
    date: date
    start_time: datetime
    end_time: datetime
    available: bool
    price: Optional[Decimal] = None
    conflicting_codes: List[str] = []


class PreviewCellResponse(BaseModel):
    day_of_week: int
    hour: int
    available: int
    conflicting: int


class RecurringBookingResponse(BaseModel):
    group_id: Optional[int] = None
    preview: bool = False
    created: List[BookingResponse] = []
    skipped: List[SkippedOccurrenceResponse] = []
    occurrences: List[PreviewOccurrenceResponse] = []
    cells: List[PreviewCellResponse] = []
    estimated_total: Optional[Decimal] = None


class GroupCancelRequest(BaseModel):
    reason: Optional[str] = None
    cancel_only_future: bool = False
    full_refund: bool = False  # Solo admin: reembolso total ignorando la política


class GroupMemberFailureResponse(BaseModel):
    booking_id: int
    booking_code: str
    error: str


class GroupCancelResponse(BaseModel):
    group_id: int
    group_status: BookingGroupStatus
    cancelled: List[BookingResponse]
    failed: List[GroupMemberFailureResponse]
    total_refund: Decimal


class BookingGroupDetailsResponse(BaseModel):
    id: int
    court_id: int
    user_id: Optional[int] = None
    pattern: RecurrencePattern
    day_of_week: int
    occurrences_requested: int
    status: BookingGroupStatus
    created_at: Optional[datetime] = None
    stats: Dict[str, int]
    bookings: List[BookingResponse]
