from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.enums.booking_status import BookingStatus
from app.enums.booking_type import BookingType, BookingActor
from app.enums.payment import PaymentMethod, PaymentStatus
from app.enums.recurrence_pattern import RecurrencePattern


class BookingCreate(BaseModel):
    court_id: int
    start_time: datetime
    end_time: datetime
    payment_method: Optional[PaymentMethod] = None
    type: BookingType = BookingType.REGULAR

    # Reserva de invitado (solo staff)
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None

    @model_validator(mode="after")
    def validate_guest_fields(self):
        if bool(self.guest_name) != bool(self.guest_phone):
            raise ValueError("guest_name and guest_phone must be provided together")
        return self


class BookingPayRequest(BaseModel):
    method: PaymentMethod = PaymentMethod.WALLET


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = None


class GatewayOutcome(BaseModel):
    """Resultado ya verificado que entrega el módulo de pasarela de pagos"""

    booking_id: int
    success: bool
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)


class BookingResponse(BaseModel):
    id: int
    booking_code: str
    court_id: int
    user_id: Optional[int] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    paid_amount: Decimal
    refund_amount: Decimal
    status: BookingStatus
    type: BookingType
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus
    expires_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    overwritten: bool = False
    recurrence_group_id: Optional[int] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_day_of_week: Optional[int] = None
    created_by: Optional[BookingActor] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancellationResponse(BaseModel):
    booking: BookingResponse
    refund_amount: Decimal
    refund_percentage: int
    wallet_transaction_id: Optional[int] = None
