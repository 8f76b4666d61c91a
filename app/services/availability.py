"""
Verificación de disponibilidad de canchas.

Una reserva ocupa la cancha si está CONFIRMED, CHECKED_IN o BLOCKED, o si está
PENDING_PAYMENT y su retención todavía no venció. El vencimiento se evalúa al
leer: una retención vencida no ocupa nada aunque la fila siga diciendo
PENDING_PAYMENT.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.crud import court as court_crud
from app.crud import pricing_rule as pricing_rule_crud
from app.enums.booking_status import BookingStatus
from app.exceptions import CourtNotFoundError, NoPricingRuleError
from app.models.booking import Booking
from app.services import pricing
from app.services.settings import get_operating_hours
from app.utils.time_utils import intervals_overlap, minutes_to_time_string

logger = logging.getLogger(__name__)

SLOT_MINUTES = 30

_ALWAYS_HOLDING = (
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
    BookingStatus.BLOCKED,
)


def holding_filter(now: datetime):
    """Condición SQL equivalente a is_holding"""
    return or_(
        Booking.status.in_(_ALWAYS_HOLDING),
        and_(
            Booking.status == BookingStatus.PENDING_PAYMENT,
            Booking.expires_at > now,
        ),
    )


def is_holding(booking: Booking, now: datetime) -> bool:
    if booking.status in _ALWAYS_HOLDING:
        return True
    if booking.status == BookingStatus.PENDING_PAYMENT:
        return booking.expires_at is not None and booking.expires_at > now
    return False


def find_conflicts(
    db: Session,
    court_id: int,
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
    excluding_booking_id: Optional[int] = None,
) -> List[Booking]:
    """
    Reservas vigentes de la cancha que se solapan con [start, end).

    Que una reserva termine exactamente cuando empieza la otra no es conflicto.
    """
    now = now or datetime.now()
    query = (
        db.query(Booking)
        .filter(Booking.court_id == court_id)
        .filter(Booking.start_time < end, Booking.end_time > start)
        .filter(holding_filter(now))
    )
    if excluding_booking_id is not None:
        query = query.filter(Booking.id != excluding_booking_id)
    return query.order_by(Booking.start_time).all()


def is_free(
    db: Session,
    court_id: int,
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
    excluding_booking_id: Optional[int] = None,
) -> bool:
    return not find_conflicts(db, court_id, start, end, now, excluding_booking_id)


def conflict_details(conflicts: List[Booking]) -> List[dict]:
    return [
        {
            "booking_id": b.id,
            "booking_code": b.booking_code,
            "start_time": b.start_time.isoformat(),
            "end_time": b.end_time.isoformat(),
            "status": b.status.value,
        }
        for b in conflicts
    ]


def get_day_availability(
    db: Session, court_id: int, day: date, now: Optional[datetime] = None
) -> List[dict]:
    """
    Grilla de turnos de 30 minutos dentro del horario de funcionamiento.

    Un turno está disponible si no se solapa con ninguna reserva vigente y
    todavía no empezó. El precio es el que resolvería una reserva de ese turno;
    None si no hay regla que lo cubra.
    """
    now = now or datetime.now()
    court = court_crud.get_court(db, court_id)
    if court is None:
        raise CourtNotFoundError(
            f"Court {court_id} not found", details={"court_id": court_id}
        )

    hours = get_operating_hours(db)
    day_start = datetime.combine(day, datetime.min.time())
    opening = day_start + timedelta(hours=hours.opening_hour)
    closing = day_start + timedelta(hours=hours.closing_hour)

    holding = find_conflicts(db, court_id, opening, closing, now)
    rules = pricing_rule_crud.get_candidate_rules(db, court_id)

    slots = []
    slot_start = opening
    while slot_start + timedelta(minutes=SLOT_MINUTES) <= closing:
        slot_end = slot_start + timedelta(minutes=SLOT_MINUTES)
        taken = any(
            intervals_overlap(slot_start, slot_end, b.start_time, b.end_time)
            for b in holding
        )
        try:
            price = pricing.build_schedule(court_id, rules, slot_start, slot_end).total
        except NoPricingRuleError:
            price = None

        start_minutes = int((slot_start - day_start).total_seconds() // 60)
        slots.append(
            {
                "time": f"{minutes_to_time_string(start_minutes)}-"
                f"{minutes_to_time_string(start_minutes + SLOT_MINUTES)}",
                "start": slot_start,
                "end": slot_end,
                "available": not taken and slot_start >= now,
                "price": price,
            }
        )
        slot_start = slot_end

    return slots
