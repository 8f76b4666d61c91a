import logging
from typing import Optional

from sqlalchemy.orm import Session

from app import config
from app.database import atomic
from app.exceptions import ValidationException
from app.models.system_setting import SystemSetting
from app.schemas.settings import OperatingHours

logger = logging.getLogger(__name__)

OPERATING_HOURS_KEY = "operating_hours"
MIN_OPEN_HOURS = 2


def default_operating_hours() -> OperatingHours:
    return OperatingHours(
        opening_hour=config.DEFAULT_OPENING_HOUR,
        closing_hour=config.DEFAULT_CLOSING_HOUR,
    )


def get_operating_hours(db: Session) -> OperatingHours:
    setting = db.query(SystemSetting).filter(SystemSetting.key == OPERATING_HOURS_KEY).first()
    if setting is None:
        return default_operating_hours()
    return OperatingHours(**setting.value)


def validate_operating_hours(hours: OperatingHours) -> None:
    if hours.opening_hour >= hours.closing_hour:
        raise ValidationException(
            "Opening hour must be before closing hour",
            details=hours.model_dump(),
        )
    if hours.closing_hour - hours.opening_hour < MIN_OPEN_HOURS:
        raise ValidationException(
            f"Operating hours must span at least {MIN_OPEN_HOURS} hours",
            details=hours.model_dump(),
        )


def update_operating_hours(
    db: Session, hours: OperatingHours, updated_by: Optional[str] = None
) -> OperatingHours:
    validate_operating_hours(hours)

    with atomic(db):
        setting = (
            db.query(SystemSetting)
            .filter(SystemSetting.key == OPERATING_HOURS_KEY)
            .first()
        )
        if setting is None:
            setting = SystemSetting(
                key=OPERATING_HOURS_KEY,
                description="Horario de funcionamiento del club",
            )
            db.add(setting)
        setting.value = hours.model_dump()
        setting.updated_by = updated_by

    logger.info(
        f"Horario actualizado a {hours.opening_hour}:00-{hours.closing_hour}:00 por {updated_by}"
    )
    return hours


def reset_operating_hours(db: Session, updated_by: Optional[str] = None) -> OperatingHours:
    """Vuelve al horario por defecto de la configuración"""
    return update_operating_hours(db, default_operating_hours(), updated_by)
