from enum import Enum


class BookingType(str, Enum):
    REGULAR = "REGULAR"
    MAINTENANCE = "MAINTENANCE"


class BookingActor(str, Enum):
    """Quién creó la reserva"""

    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"
