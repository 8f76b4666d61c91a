from enum import Enum


class BookingStatus(str, Enum):
    """Estados del ciclo de vida de una reserva"""

    PENDING_PAYMENT = "PENDING_PAYMENT"  # Retenida hasta expires_at
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    CANCELLED_LATE = "CANCELLED_LATE"  # Cancelada en el tramo sin reembolso
    EXPIRED = "EXPIRED"
    BLOCKED = "BLOCKED"  # Bloqueo de mantenimiento


# Estados que ocupan la cancha (PENDING_PAYMENT solo mientras no venza)
HOLDING_STATUSES = frozenset(
    {
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.CONFIRMED,
        BookingStatus.CHECKED_IN,
        BookingStatus.BLOCKED,
    }
)

TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.CANCELLED_LATE,
        BookingStatus.EXPIRED,
    }
)


class BookingGroupStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
