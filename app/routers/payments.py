from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.routers.bookings import booking_response
from app.schemas.booking import BookingResponse, GatewayOutcome
from app.services import booking_lifecycle

router = APIRouter()


@router.post("/gateway/callback", response_model=BookingResponse)
def gateway_callback(outcome: GatewayOutcome, db: Session = Depends(get_db)):
    """
    Recibe el resultado de la pasarela ya verificado por el módulo de pagos.
    Repetir el mismo callback no cambia nada.
    """
    booking = booking_lifecycle.apply_gateway_outcome(
        db, outcome.booking_id, outcome.success, outcome.amount_paid
    )
    return booking_response(booking)
