"""
Política de reembolso por cancelación.

Funciones puras: dependen solo de las horas que faltan para el inicio y del
monto efectivamente pagado.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from app import config
from app.utils.time_utils import hours_between


def refund_percentage(
    hours_until_start: float,
    full_refund_hours: Optional[int] = None,
    half_refund_hours: Optional[int] = None,
) -> int:
    """
    >= 24h: 100%, >= 12h: 50%, menos: 0%. Los límites pertenecen al tramo superior.
    """
    full_refund_hours = (
        config.FULL_REFUND_HOURS if full_refund_hours is None else full_refund_hours
    )
    half_refund_hours = (
        config.HALF_REFUND_HOURS if half_refund_hours is None else half_refund_hours
    )

    if hours_until_start >= full_refund_hours:
        return 100
    if hours_until_start >= half_refund_hours:
        return 50
    return 0


def compute_refund(
    paid_amount: Decimal, start_time: datetime, now: datetime
) -> Tuple[Decimal, int]:
    """
    Calcula el reembolso sobre lo pagado (nunca sobre el precio total).

    Returns:
        (monto a reembolsar, porcentaje aplicado)
    """
    percentage = refund_percentage(hours_between(now, start_time))
    amount = (Decimal(paid_amount) * percentage / 100).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    return amount, percentage
