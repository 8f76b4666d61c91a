"""
Utilidades de tiempo para intervalos semiabiertos [inicio, fin).

Todas las fechas son horas locales del club sin zona horaria.
"""

import calendar
from datetime import datetime, date, time, timedelta


MINUTES_PER_DAY = 24 * 60


def minutes_to_time_string(minutes: int) -> str:
    """Convierte minutos desde medianoche a "HH:MM" """
    hours = minutes // 60
    mins = minutes % 60
    return f"{hours:02d}:{mins:02d}"


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def day_of_week(value: date) -> int:
    """Día de la semana con 0=domingo..6=sábado (Python usa 0=lunes)"""
    return (value.weekday() + 1) % 7


def intervals_overlap(
    start: datetime, end: datetime, other_start: datetime, other_end: datetime
) -> bool:
    """
    Dos intervalos semiabiertos se solapan si cada uno empieza antes de que
    termine el otro. Que uno termine justo cuando empieza el otro no es solapamiento.
    """
    return start < other_end and other_start < end


def is_minute_aligned(value: datetime) -> bool:
    return value.second == 0 and value.microsecond == 0


def next_midnight(value: datetime) -> datetime:
    return datetime.combine(value.date() + timedelta(days=1), time(0, 0))


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def add_months(value: datetime, months: int) -> datetime:
    """
    Suma meses calendario conservando la hora. Si el día no existe en el mes
    destino (31 de enero + 1 mes) se usa el último día de ese mes.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))
