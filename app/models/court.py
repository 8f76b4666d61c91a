from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric
from sqlalchemy.orm import relationship
from app.database import Base
from datetime import datetime


class Court(Base):
    __tablename__ = "courts"
    __table_args__ = {"extend_existing": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    # Precio de referencia; el costo real de una reserva lo resuelven las reglas de precio
    price_per_hour = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    bookings = relationship("app.models.booking.Booking", back_populates="court")
    pricing_rules = relationship(
        "app.models.pricing_rule.PricingRule", back_populates="court"
    )
