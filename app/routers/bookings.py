from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.crud import booking as crud
from app.enums.booking_status import BookingStatus
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingPayRequest,
    BookingResponse,
    CancellationResponse,
)
from app.schemas.recurring import (
    BookingGroupDetailsResponse,
    GroupCancelRequest,
    GroupCancelResponse,
    RecurringBookingRequest,
    RecurringBookingResponse,
)
from app.services import booking_lifecycle, recurring
from app.services.auth import get_current_user

router = APIRouter()


def booking_response(booking: Booking) -> BookingResponse:
    """Serializa la reserva con su estado efectivo (retenciones vencidas como EXPIRED)"""
    response = BookingResponse.model_validate(booking)
    response.status = booking_lifecycle.effective_status(booking)
    return response


@router.post("/", response_model=BookingResponse)
def create_booking(
    booking: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_booking = booking_lifecycle.create_booking(
        db,
        current_user,
        booking.court_id,
        booking.start_time,
        booking.end_time,
        payment_method=booking.payment_method,
        booking_type=booking.type,
        guest_name=booking.guest_name,
        guest_phone=booking.guest_phone,
    )
    return booking_response(db_booking)


@router.get("/", response_model=List[BookingResponse])
def read_bookings(
    skip: int = 0,
    limit: int = 100,
    user_id: Optional[int] = None,
    court_id: Optional[int] = None,
    status: Optional[BookingStatus] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Los clientes solo ven sus reservas
    if not current_user.is_staff:
        user_id = current_user.id

    bookings = crud.get_bookings(
        db=db, skip=skip, limit=limit, user_id=user_id, court_id=court_id, status=status
    )
    return [booking_response(b) for b in bookings]


@router.post("/recurring", response_model=RecurringBookingResponse)
def create_recurring_bookings(
    request: RecurringBookingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = recurring.generate_recurring(
        db,
        current_user,
        request.court_id,
        request.start_time,
        request.end_time,
        request.pattern,
        request.occurrences,
        preview_only=request.preview_only,
        payment_method=request.payment_method,
    )
    return RecurringBookingResponse(
        group_id=result.group_id,
        preview=result.preview,
        created=[booking_response(b) for b in result.created],
        skipped=[vars(s) for s in result.skipped],
        occurrences=[vars(o) for o in result.occurrences],
        cells=[vars(c) for c in result.cells],
        estimated_total=result.estimated_total,
    )


@router.get("/groups/{group_id}", response_model=BookingGroupDetailsResponse)
def read_booking_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    group, stats, bookings = recurring.get_group_details(db, group_id, current_user)
    return BookingGroupDetailsResponse(
        id=group.id,
        court_id=group.court_id,
        user_id=group.user_id,
        pattern=group.pattern,
        day_of_week=group.day_of_week,
        occurrences_requested=group.occurrences_requested,
        status=group.status,
        created_at=group.created_at,
        stats=stats,
        bookings=[booking_response(b) for b in bookings],
    )


@router.post("/groups/{group_id}/cancel", response_model=GroupCancelResponse)
def cancel_booking_group(
    group_id: int,
    request: GroupCancelRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = recurring.cancel_group(
        db,
        group_id,
        current_user,
        reason=request.reason,
        cancel_only_future=request.cancel_only_future,
        full_refund=request.full_refund,
    )
    return GroupCancelResponse(
        group_id=result.group.id,
        group_status=result.group.status,
        cancelled=[booking_response(b) for b in result.cancelled],
        failed=[vars(f) for f in result.failed],
        total_refund=result.total_refund,
    )


@router.get("/code/{booking_code}", response_model=BookingResponse)
def read_booking_by_code(
    booking_code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_booking = crud.get_booking_by_code(db, booking_code)
    if db_booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if not current_user.is_staff and db_booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not allowed to view this booking")
    return booking_response(db_booking)


@router.get("/{booking_id}", response_model=BookingResponse)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_booking = crud.get_booking(db=db, booking_id=booking_id)
    if db_booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if not current_user.is_staff and db_booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not allowed to view this booking")
    return booking_response(db_booking)


@router.post("/{booking_id}/pay", response_model=BookingResponse)
def pay_booking(
    booking_id: int,
    request: BookingPayRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_booking = booking_lifecycle.pay_booking(
        db, booking_id, current_user, method=request.method
    )
    return booking_response(db_booking)


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
def cancel_booking(
    booking_id: int,
    request: BookingCancelRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = booking_lifecycle.cancel_booking(
        db, booking_id, current_user, reason=request.reason
    )
    return CancellationResponse(
        booking=booking_response(result.booking),
        refund_amount=result.refund_amount,
        refund_percentage=result.refund_percentage,
        wallet_transaction_id=result.wallet_transaction.id
        if result.wallet_transaction
        else None,
    )


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
def check_in(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return booking_response(booking_lifecycle.check_in(db, booking_id, current_user))


@router.post("/{booking_id}/finish", response_model=BookingResponse)
def finish_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return booking_response(
        booking_lifecycle.finish_booking(db, booking_id, current_user)
    )
