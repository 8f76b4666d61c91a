from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Boolean,
    Numeric,
    Time,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from app.database import Base


class PricingRule(Base):
    __tablename__ = "pricing_rules"
    __table_args__ = (
        CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_pricing_rules_day_of_week",
        ),
        CheckConstraint("price_per_hour >= 0", name="ck_pricing_rules_price"),
        {"extend_existing": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=True)  # NULL = todas
    day_of_week = Column(Integer, nullable=True)  # 0=domingo..6=sábado, NULL = todos
    start_time = Column(Time, nullable=False)  # Inclusive
    end_time = Column(Time, nullable=False)  # Exclusiva; 00:00 = fin del día
    price_per_hour = Column(Numeric(12, 2), nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    court = relationship("app.models.court.Court", back_populates="pricing_rules")
