from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.models.user import User
from app.routers.bookings import booking_response
from app.schemas.admin import AdminUpdateRequest, AdminUpdateResponse
from app.schemas.booking import BookingResponse
from app.services import admin_override, housekeeping
from app.services.auth import require_admin

router = APIRouter()


@router.patch("/bookings/{booking_id}", response_model=AdminUpdateResponse)
def force_update_booking(
    booking_id: int,
    request: AdminUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = admin_override.force_update(
        db, booking_id, current_user, request.patch, request.options
    )
    return AdminUpdateResponse(
        booking=booking_response(result.booking),
        price_change=vars(result.price_change) if result.price_change else None,
        conflicts=[vars(c) for c in result.conflicts],
        admin_action_id=result.admin_action_id,
    )


@router.post("/bookings/{booking_id}/lift-block", response_model=BookingResponse)
def lift_block(
    booking_id: int,
    note: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    booking = admin_override.lift_block(db, booking_id, current_user, note=note)
    return booking_response(booking)


@router.post("/housekeeping")
def run_housekeeping(
    db: Session = Depends(get_db), current_user: User = Depends(require_admin)
):
    return housekeeping.run_housekeeping(db)
