from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime

from app.database import Base


class SystemSetting(Base):
    __tablename__ = "system_settings"
    __table_args__ = {"extend_existing": True}

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    description = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
