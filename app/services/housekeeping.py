"""
Barridos periódicos de limpieza.

No son necesarios para la correctitud (el vencimiento se evalúa al leer);
solo dejan las filas en el estado que ya se informa.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.database import atomic
from app.enums.booking_status import BookingStatus
from app.models.booking import Booking
from app.services.events import (
    BOOKING_COMPLETED,
    BOOKING_EXPIRED,
    booking_payload,
    event_bus,
)
from app.utils.locking import lock_courts

logger = logging.getLogger(__name__)


def _sweep(
    db: Session, candidates_query, still_applies, apply
) -> List[Booking]:
    court_ids = {court_id for (court_id,) in candidates_query.with_entities(Booking.court_id)}
    if not court_ids:
        return []

    with atomic(db):
        lock_courts(db, court_ids)
        swept = []
        for booking in candidates_query.populate_existing().all():
            if still_applies(booking):
                apply(booking)
                swept.append(booking)
    return swept


def expire_stale_holds(db: Session, now: Optional[datetime] = None) -> int:
    """Pasa a EXPIRED las retenciones PENDING_PAYMENT vencidas"""
    now = now or datetime.now()
    query = db.query(Booking).filter(
        Booking.status == BookingStatus.PENDING_PAYMENT,
        Booking.expires_at <= now,
    )

    def apply(booking: Booking) -> None:
        booking.status = BookingStatus.EXPIRED

    expired = _sweep(
        db,
        query,
        lambda b: b.status == BookingStatus.PENDING_PAYMENT and b.expires_at <= now,
        apply,
    )

    if expired:
        logger.info(f"{len(expired)} retenciones vencidas marcadas como EXPIRED")
    for booking in expired:
        event_bus.publish(BOOKING_EXPIRED, booking_payload(booking))
    return len(expired)


def complete_finished_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """Completa las reservas CHECKED_IN cuyo horario ya terminó"""
    now = now or datetime.now()
    query = db.query(Booking).filter(
        Booking.status == BookingStatus.CHECKED_IN,
        Booking.end_time <= now,
    )

    def apply(booking: Booking) -> None:
        booking.status = BookingStatus.COMPLETED
        booking.completed_at = booking.end_time

    completed = _sweep(
        db,
        query,
        lambda b: b.status == BookingStatus.CHECKED_IN and b.end_time <= now,
        apply,
    )

    if completed:
        logger.info(f"{len(completed)} reservas completadas automáticamente")
    for booking in completed:
        event_bus.publish(BOOKING_COMPLETED, booking_payload(booking))
    return len(completed)


def run_housekeeping(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    return {
        "expired": expire_stale_holds(db, now),
        "completed": complete_finished_sessions(db, now),
    }
