from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime

from app.database import Base
from app.enums.booking_status import BookingGroupStatus
from app.enums.recurrence_pattern import RecurrencePattern


class BookingGroup(Base):
    """Grupo de reservas creadas juntas por un pedido recurrente"""

    __tablename__ = "booking_groups"
    __table_args__ = {"extend_existing": True}

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False)
    pattern = Column(Enum(RecurrencePattern), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    occurrences_requested = Column(Integer, nullable=False)
    status = Column(Enum(BookingGroupStatus), default=BookingGroupStatus.ACTIVE)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    bookings = relationship(
        "app.models.booking.Booking",
        back_populates="recurrence_group",
        order_by="Booking.start_time",
    )
    court = relationship("app.models.court.Court")
    user = relationship("app.models.user.User", foreign_keys=[user_id])
