"""
Tests del horario de funcionamiento
"""
import pytest

from app import config
from app.exceptions import ValidationException
from app.schemas.settings import OperatingHours
from app.services import settings


def test_defaults_come_from_config(db):
    hours = settings.get_operating_hours(db)
    assert hours.opening_hour == config.DEFAULT_OPENING_HOUR
    assert hours.closing_hour == config.DEFAULT_CLOSING_HOUR


def test_update_and_reset(db):
    settings.update_operating_hours(
        db, OperatingHours(opening_hour=7, closing_hour=23), "admin@example.com"
    )
    assert settings.get_operating_hours(db) == OperatingHours(opening_hour=7, closing_hour=23)

    settings.reset_operating_hours(db, "admin@example.com")
    assert settings.get_operating_hours(db) == settings.default_operating_hours()


@pytest.mark.parametrize(
    "opening,closing",
    [
        (10, 10),
        (12, 8),
        (10, 11),
    ],
)
def test_invalid_operating_hours(db, opening, closing):
    with pytest.raises(ValidationException):
        settings.update_operating_hours(
            db, OperatingHours(opening_hour=opening, closing_hour=closing)
        )
    assert settings.get_operating_hours(db) == settings.default_operating_hours()
