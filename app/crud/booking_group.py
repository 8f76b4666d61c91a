from sqlalchemy.orm import Session
from typing import List, Optional

from app.models.booking import Booking
from app.models.booking_group import BookingGroup


def get_booking_group(db: Session, group_id: int) -> Optional[BookingGroup]:
    return db.query(BookingGroup).filter(BookingGroup.id == group_id).first()


def get_group_bookings(db: Session, group_id: int) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.recurrence_group_id == group_id)
        .order_by(Booking.start_time)
        .all()
    )
