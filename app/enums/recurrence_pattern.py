from enum import Enum


class RecurrencePattern(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"  # Cada 2 semanas
    MONTHLY = "MONTHLY"  # Mismo día del mes
