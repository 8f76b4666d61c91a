"""
Resolución de precios por tramo horario.

Las reglas forman un conjunto plano con orden total (prioridad y luego un
desempate configurable). Un intervalo se corta en cada medianoche y en cada
borde de regla; cada tramo toma la regla ganadora y los tramos contiguos con el
mismo ganador se fusionan.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app import config
from app.crud import court as court_crud
from app.crud import pricing_rule as pricing_rule_crud
from app.exceptions import CourtNotFoundError, InvalidIntervalError, NoPricingRuleError
from app.models.pricing_rule import PricingRule
from app.utils.time_utils import (
    MINUTES_PER_DAY,
    day_of_week,
    is_minute_aligned,
    next_midnight,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

TIE_BREAK_LOWEST_ID = "lowest_id"
TIE_BREAK_MOST_SPECIFIC = "most_specific"


@dataclass
class PriceSlice:
    start: datetime
    end: datetime
    price_per_hour: Decimal
    rule_id: int

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def amount(self) -> Decimal:
        return (Decimal(self.minutes) * Decimal(self.price_per_hour) / 60).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )


@dataclass
class PriceQuote:
    court_id: int
    start: datetime
    end: datetime
    slices: List[PriceSlice] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        minutes_by_price = sum(
            Decimal(s.minutes) * Decimal(s.price_per_hour) for s in self.slices
        )
        return (Decimal(minutes_by_price) / 60).quantize(CENTS, rounding=ROUND_HALF_UP)


def _window(rule: PricingRule):
    """Ventana de la regla en minutos; fin 00:00 significa fin del día"""
    start = time_to_minutes(rule.start_time)
    end = time_to_minutes(rule.end_time)
    if end == 0:
        end = MINUTES_PER_DAY
    return start, end


def rule_covers(rule: PricingRule, moment: datetime) -> bool:
    """
    Indica si la regla aplica al minuto que empieza en `moment` (sin mirar la cancha).

    Una ventana que cruza la medianoche pertenece al día en que abre: la regla
    del lunes 22:00-02:00 cubre también el martes de 00:00 a 02:00.
    """
    minute = moment.hour * 60 + moment.minute
    start, end = _window(rule)
    if start < end:
        opened_on = moment.date() if start <= minute < end else None
    elif minute >= start:
        opened_on = moment.date()
    elif minute < end:
        opened_on = moment.date() - timedelta(days=1)
    else:
        opened_on = None

    if opened_on is None:
        return False
    return rule.day_of_week is None or rule.day_of_week == day_of_week(opened_on)


def order_rules(
    rules: Sequence[PricingRule], tie_break: Optional[str] = None
) -> List[PricingRule]:
    """
    Ordena las reglas de mayor a menor preferencia.

    Con "lowest_id" gana el id más bajo entre prioridades iguales; con
    "most_specific" gana la regla de cancha sobre la global, y la de día sobre
    la de toda la semana, antes de recurrir al id.
    """
    tie_break = tie_break or config.PRICING_TIE_BREAK

    if tie_break == TIE_BREAK_MOST_SPECIFIC:
        return sorted(
            rules,
            key=lambda r: (
                -r.priority,
                r.court_id is None,
                r.day_of_week is None,
                r.id,
            ),
        )
    if tie_break != TIE_BREAK_LOWEST_ID:
        logger.warning(
            f"PRICING_TIE_BREAK desconocido '{tie_break}', se usa {TIE_BREAK_LOWEST_ID}"
        )
    return sorted(rules, key=lambda r: (-r.priority, r.id))


def winning_rule(
    ordered_rules: Sequence[PricingRule], moment: datetime
) -> Optional[PricingRule]:
    for rule in ordered_rules:
        if rule_covers(rule, moment):
            return rule
    return None


def _breakpoints(rules: Sequence[PricingRule]) -> List[int]:
    points = set()
    for rule in rules:
        start, end = _window(rule)
        points.add(start % MINUTES_PER_DAY)
        points.add(end % MINUTES_PER_DAY)
    return sorted(points)


def validate_interval(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidIntervalError(
            "End time must be after start time",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )
    if not is_minute_aligned(start) or not is_minute_aligned(end):
        raise InvalidIntervalError("Start and end times must be whole minutes")


def build_schedule(
    court_id: int,
    rules: Sequence[PricingRule],
    start: datetime,
    end: datetime,
    tie_break: Optional[str] = None,
) -> PriceQuote:
    """
    Arma el cronograma de precios de [start, end) a partir de reglas ya cargadas.

    Args:
        court_id: Cancha para la que se cotiza (las reglas ya deben estar filtradas)
        rules: Reglas activas candidatas
        start: Inicio del intervalo (inclusive)
        end: Fin del intervalo (exclusivo)
        tie_break: Política de desempate; por defecto la configurada

    Returns:
        PriceQuote con tramos contiguos cuya duración suma el intervalo

    Raises:
        NoPricingRuleError: si algún minuto del intervalo no tiene regla aplicable
    """
    validate_interval(start, end)

    ordered = order_rules(rules, tie_break)
    points = _breakpoints(ordered)
    quote = PriceQuote(court_id=court_id, start=start, end=end)

    cursor = start
    while cursor < end:
        # Próximo corte: medianoche o el siguiente borde de regla del día
        day_start = datetime.combine(cursor.date(), datetime.min.time())
        minute = cursor.hour * 60 + cursor.minute
        cut = min(next_midnight(cursor), end)
        for point in points:
            if point > minute:
                cut = min(cut, day_start + timedelta(minutes=point))
                break

        rule = winning_rule(ordered, cursor)
        if rule is None:
            logger.error(
                f"Sin regla de precio para la cancha {court_id} a las {cursor.isoformat()}"
            )
            raise NoPricingRuleError(
                "No pricing rule covers the requested interval",
                details={"court_id": court_id, "uncovered_from": cursor.isoformat()},
            )

        last = quote.slices[-1] if quote.slices else None
        if last is not None and last.rule_id == rule.id and last.end == cursor:
            last.end = cut
        else:
            quote.slices.append(
                PriceSlice(
                    start=cursor,
                    end=cut,
                    price_per_hour=Decimal(rule.price_per_hour),
                    rule_id=rule.id,
                )
            )
        cursor = cut

    return quote


def resolve_price(
    db: Session,
    court_id: int,
    start: datetime,
    end: datetime,
    tie_break: Optional[str] = None,
) -> PriceQuote:
    """Cotiza [start, end) en la cancha con las reglas activas de la base"""
    validate_interval(start, end)

    if court_crud.get_court(db, court_id) is None:
        raise CourtNotFoundError(
            f"Court {court_id} not found", details={"court_id": court_id}
        )

    rules = pricing_rule_crud.get_candidate_rules(db, court_id)
    quote = build_schedule(court_id, rules, start, end, tie_break)
    logger.debug(
        f"Cotización cancha {court_id} {start} - {end}: {quote.total} en {len(quote.slices)} tramos"
    )
    return quote
