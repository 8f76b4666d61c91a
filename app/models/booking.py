from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Enum,
    Numeric,
    Boolean,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal

from app.database import Base
from app.enums.booking_status import BookingStatus
from app.enums.booking_type import BookingType, BookingActor
from app.enums.payment import PaymentMethod, PaymentStatus
from app.enums.recurrence_pattern import RecurrencePattern


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_bookings_interval"),
        # Dueño registrado o invitado, nunca ambos
        CheckConstraint(
            "user_id IS NULL OR guest_name IS NULL", name="ck_bookings_single_owner"
        ),
        # Datos de recurrencia: todos o ninguno
        CheckConstraint(
            "(recurrence_group_id IS NULL AND recurrence_pattern IS NULL "
            "AND recurrence_day_of_week IS NULL) OR "
            "(recurrence_group_id IS NOT NULL AND recurrence_pattern IS NOT NULL "
            "AND recurrence_day_of_week IS NOT NULL)",
            name="ck_bookings_recurrence_all_or_nothing",
        ),
        CheckConstraint("paid_amount >= 0", name="ck_bookings_paid_amount"),
        Index("ix_bookings_court_interval", "court_id", "start_time", "end_time"),
        {"extend_existing": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_code = Column(String, unique=True, nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False)

    # Dueño: usuario registrado o invitado (nombre + teléfono)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    guest_name = Column(String, nullable=True)
    guest_phone = Column(String, nullable=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)  # Exclusiva

    total_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    paid_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    refund_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    status = Column(Enum(BookingStatus), nullable=False, index=True)
    type = Column(Enum(BookingType), default=BookingType.REGULAR, nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    payment_status = Column(
        Enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False
    )
    expires_at = Column(DateTime, nullable=True)  # Solo relevante en PENDING_PAYMENT

    checked_in_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    overwritten = Column(Boolean, default=False, nullable=False)
    admin_note = Column(String, nullable=True)

    recurrence_group_id = Column(
        Integer, ForeignKey("booking_groups.id"), nullable=True, index=True
    )
    recurrence_pattern = Column(Enum(RecurrencePattern), nullable=True)
    recurrence_day_of_week = Column(Integer, nullable=True)

    created_by = Column(Enum(BookingActor), default=BookingActor.CUSTOMER)
    created_by_staff_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    court = relationship("app.models.court.Court", back_populates="bookings")
    user = relationship(
        "app.models.user.User", back_populates="bookings", foreign_keys=[user_id]
    )
    created_by_staff = relationship(
        "app.models.user.User", foreign_keys=[created_by_staff_id]
    )
    recurrence_group = relationship(
        "app.models.booking_group.BookingGroup", back_populates="bookings"
    )
