from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional

from app.enums.booking_status import BookingStatus
from app.models.booking import Booking


def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
    return db.query(Booking).filter(Booking.id == booking_id).first()


def get_booking_by_code(db: Session, booking_code: str) -> Optional[Booking]:
    return db.query(Booking).filter(Booking.booking_code == booking_code).first()


def get_bookings(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    user_id: Optional[int] = None,
    court_id: Optional[int] = None,
    status: Optional[BookingStatus] = None,
) -> List[Booking]:
    query = db.query(Booking)

    if user_id:
        query = query.filter(Booking.user_id == user_id)
    if court_id:
        query = query.filter(Booking.court_id == court_id)
    if status:
        query = query.filter(Booking.status == status)

    return query.order_by(Booking.created_at.desc()).offset(skip).limit(limit).all()


def get_court_bookings_between(
    db: Session, court_id: int, start: datetime, end: datetime
) -> List[Booking]:
    """Reservas de la cancha que se solapan con [start, end), en cualquier estado"""
    return (
        db.query(Booking)
        .filter(Booking.court_id == court_id)
        .filter(Booking.start_time < end, Booking.end_time > start)
        .order_by(Booking.start_time)
        .all()
    )


def get_bookings_with_status(
    db: Session, status: BookingStatus, ending_before: Optional[datetime] = None
) -> List[Booking]:
    query = db.query(Booking).filter(Booking.status == status)
    if ending_before:
        query = query.filter(Booking.end_time < ending_before)
    return query.all()
