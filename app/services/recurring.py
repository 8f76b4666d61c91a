"""
Generación de reservas recurrentes.

Las fechas salen de aplicar el paso del patrón a la primera ocurrencia
(7 días, 14 días o un mes calendario), conservando la hora. Una ocurrencia en
conflicto se salta y la generación sigue: el resultado puede ser parcial.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.crud import booking_group as group_crud
from app.crud import court as court_crud
from app.crud import pricing_rule as pricing_rule_crud
from app.database import atomic
from app.enums.booking_status import (
    BookingGroupStatus,
    BookingStatus,
    TERMINAL_STATUSES,
)
from app.enums.payment import PaymentMethod
from app.enums.recurrence_pattern import RecurrencePattern
from app.exceptions import (
    BookingGroupNotFoundError,
    CourtNotFoundError,
    DomainException,
    InsufficientFundsError,
    PermissionDeniedError,
    SlotUnavailableError,
    ValidationException,
)
from app.models.booking import Booking
from app.models.booking_group import BookingGroup
from app.models.user import User
from app.services import availability, booking_lifecycle, pricing
from app.utils.locking import lock_court
from app.utils.time_utils import add_months, day_of_week

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 52

SKIP_CONFLICT = "conflict"
SKIP_PAST = "in_the_past"
SKIP_INSUFFICIENT_FUNDS = "insufficient_funds"


@dataclass
class SkippedOccurrence:
    date: date
    reason: str
    conflicting_codes: List[str] = field(default_factory=list)


@dataclass
class PreviewOccurrence:
    date: date
    start_time: datetime
    end_time: datetime
    available: bool
    price: Optional[Decimal] = None
    conflicting_codes: List[str] = field(default_factory=list)


@dataclass
class PreviewCell:
    day_of_week: int
    hour: int
    available: int = 0
    conflicting: int = 0


@dataclass
class RecurringResult:
    group: Optional[BookingGroup] = None
    preview: bool = False
    created: List[Booking] = field(default_factory=list)
    skipped: List[SkippedOccurrence] = field(default_factory=list)
    occurrences: List[PreviewOccurrence] = field(default_factory=list)
    cells: List[PreviewCell] = field(default_factory=list)
    estimated_total: Optional[Decimal] = None

    @property
    def group_id(self) -> Optional[int]:
        return self.group.id if self.group else None


@dataclass
class GroupMemberFailure:
    booking_id: int
    booking_code: str
    error: str


@dataclass
class GroupCancelResult:
    group: BookingGroup
    cancelled: List[Booking] = field(default_factory=list)
    failed: List[GroupMemberFailure] = field(default_factory=list)
    total_refund: Decimal = Decimal("0")


def expand_dates(
    start: datetime, end: datetime, pattern: RecurrencePattern, occurrences: int
) -> List[Tuple[datetime, datetime]]:
    """
    Intervalos de cada ocurrencia. Siempre se calcula desde la primera para que
    un mes corto (31 -> 28) no arrastre el día en los meses siguientes.
    """
    duration = end - start
    intervals = []
    for k in range(occurrences):
        if pattern == RecurrencePattern.WEEKLY:
            occurrence_start = start + timedelta(days=7 * k)
        elif pattern == RecurrencePattern.BIWEEKLY:
            occurrence_start = start + timedelta(days=14 * k)
        else:
            occurrence_start = add_months(start, k)
        intervals.append((occurrence_start, occurrence_start + duration))
    return intervals


def _validate_occurrences(occurrences: int) -> None:
    if occurrences < 1 or occurrences > MAX_OCCURRENCES:
        raise ValidationException(
            f"Occurrences must be between 1 and {MAX_OCCURRENCES}",
            details={"occurrences": occurrences},
        )


def preview_recurring(
    db: Session,
    court_id: int,
    start: datetime,
    end: datetime,
    pattern: RecurrencePattern,
    occurrences: int,
    now: Optional[datetime] = None,
) -> RecurringResult:
    """Calcula qué pasaría sin escribir nada"""
    now = now or datetime.now()
    pricing.validate_interval(start, end)
    _validate_occurrences(occurrences)

    if court_crud.get_court(db, court_id) is None:
        raise CourtNotFoundError(
            f"Court {court_id} not found", details={"court_id": court_id}
        )

    rules = pricing_rule_crud.get_candidate_rules(db, court_id)
    result = RecurringResult(preview=True, estimated_total=Decimal("0"))
    cells: Dict[Tuple[int, int], PreviewCell] = {}

    for occurrence_start, occurrence_end in expand_dates(start, end, pattern, occurrences):
        conflicts = availability.find_conflicts(
            db, court_id, occurrence_start, occurrence_end, now
        )
        available = not conflicts and occurrence_start >= now
        price = pricing.build_schedule(
            court_id, rules, occurrence_start, occurrence_end
        ).total

        result.occurrences.append(
            PreviewOccurrence(
                date=occurrence_start.date(),
                start_time=occurrence_start,
                end_time=occurrence_end,
                available=available,
                price=price,
                conflicting_codes=[b.booking_code for b in conflicts],
            )
        )

        key = (day_of_week(occurrence_start.date()), occurrence_start.hour)
        cell = cells.setdefault(key, PreviewCell(day_of_week=key[0], hour=key[1]))
        if available:
            cell.available += 1
            result.estimated_total += price
        else:
            cell.conflicting += 1

    result.cells = [cells[key] for key in sorted(cells)]
    return result


def generate_recurring(
    db: Session,
    actor: User,
    court_id: int,
    start: datetime,
    end: datetime,
    pattern: RecurrencePattern,
    occurrences: int,
    preview_only: bool = False,
    payment_method: Optional[PaymentMethod] = None,
    now: Optional[datetime] = None,
) -> RecurringResult:
    """
    Crea las ocurrencias libres y registra las salteadas.

    Todo corre en una transacción con la cancha bloqueada. Un conflicto, una
    fecha pasada o falta de saldo saltean solo esa ocurrencia (se detectan antes
    de escribir nada); un error de precios aborta el lote completo.
    """
    now = now or datetime.now()
    if preview_only:
        return preview_recurring(db, court_id, start, end, pattern, occurrences, now)

    pricing.validate_interval(start, end)
    _validate_occurrences(occurrences)
    if payment_method == PaymentMethod.CASH and not actor.is_staff:
        raise PermissionDeniedError("Cash payments are registered by staff only")

    recurrence_day = day_of_week(start.date())
    result = RecurringResult()

    with atomic(db):
        court = lock_court(db, court_id)
        if court is None:
            raise CourtNotFoundError(
                f"Court {court_id} not found", details={"court_id": court_id}
            )
        if not court.is_active:
            raise ValidationException(
                "Court is not active", details={"court_id": court_id}
            )

        for occurrence_start, occurrence_end in expand_dates(
            start, end, pattern, occurrences
        ):
            occurrence_date = occurrence_start.date()
            if occurrence_start < now:
                result.skipped.append(SkippedOccurrence(occurrence_date, SKIP_PAST))
                continue

            conflicts = availability.find_conflicts(
                db, court_id, occurrence_start, occurrence_end, now
            )
            if conflicts:
                result.skipped.append(
                    SkippedOccurrence(
                        occurrence_date,
                        SKIP_CONFLICT,
                        [b.booking_code for b in conflicts],
                    )
                )
                continue

            if result.group is None:
                result.group = BookingGroup(
                    user_id=actor.id,
                    court_id=court_id,
                    pattern=pattern,
                    day_of_week=recurrence_day,
                    occurrences_requested=occurrences,
                    status=BookingGroupStatus.ACTIVE,
                    created_by_id=actor.id,
                )
                db.add(result.group)
                db.flush()

            try:
                booking = booking_lifecycle.book_locked_court(
                    db,
                    court,
                    actor,
                    occurrence_start,
                    occurrence_end,
                    now,
                    payment_method=payment_method,
                    recurrence=(result.group.id, pattern, recurrence_day),
                )
            except SlotUnavailableError as e:
                codes = [c["booking_code"] for c in e.details.get("conflicts", [])]
                result.skipped.append(
                    SkippedOccurrence(occurrence_date, SKIP_CONFLICT, codes)
                )
                continue
            except InsufficientFundsError:
                result.skipped.append(
                    SkippedOccurrence(occurrence_date, SKIP_INSUFFICIENT_FUNDS)
                )
                continue

            result.created.append(booking)

        if result.group is not None and not result.created:
            db.delete(result.group)
            db.flush()
            result.group = None

    logger.info(
        f"Recurrencia {pattern.value} en cancha {court_id}: "
        f"{len(result.created)} creadas, {len(result.skipped)} salteadas"
    )
    for booking in result.created:
        booking_lifecycle.publish_created(booking)
    return result


def _get_group(db: Session, group_id: int, actor: User) -> BookingGroup:
    group = group_crud.get_booking_group(db, group_id)
    if group is None:
        raise BookingGroupNotFoundError(
            f"Booking group {group_id} not found", details={"group_id": group_id}
        )
    if not actor.is_staff and group.user_id != actor.id:
        raise PermissionDeniedError("You can only manage your own booking groups")
    return group


def cancel_group(
    db: Session,
    group_id: int,
    actor: User,
    now: Optional[datetime] = None,
    reason: Optional[str] = None,
    cancel_only_future: bool = False,
    full_refund: bool = False,
) -> GroupCancelResult:
    """
    Cancela cada reserva del grupo con la cancelación normal, una transacción por
    reserva. Las fallas se acumulan en vez de cortar el recorrido.
    """
    now = now or datetime.now()
    if full_refund and not actor.is_admin:
        raise PermissionDeniedError("Only admins can force a full refund")

    group = _get_group(db, group_id, actor)
    result = GroupCancelResult(group=group)

    members = group_crud.get_group_bookings(db, group_id)
    for member in members:
        status = booking_lifecycle.effective_status(member, now)
        if status in TERMINAL_STATUSES:
            continue
        if cancel_only_future and member.start_time <= now:
            continue

        booking_id, booking_code = member.id, member.booking_code
        try:
            cancellation = booking_lifecycle.cancel_booking(
                db,
                booking_id,
                actor,
                now=now,
                reason=reason,
                full_refund=full_refund,
            )
        except DomainException as e:
            logger.warning(
                f"No se pudo cancelar {booking_code} del grupo {group_id}: {e.message}"
            )
            result.failed.append(
                GroupMemberFailure(
                    booking_id=booking_id, booking_code=booking_code, error=e.message
                )
            )
            continue

        result.cancelled.append(cancellation.booking)
        result.total_refund += cancellation.refund_amount

    remaining = [
        b
        for b in group_crud.get_group_bookings(db, group_id)
        if booking_lifecycle.effective_status(b, now) not in TERMINAL_STATUSES
    ]
    if not remaining and group.status != BookingGroupStatus.CANCELLED:
        with atomic(db):
            group.status = BookingGroupStatus.CANCELLED

    logger.info(
        f"Grupo {group_id}: {len(result.cancelled)} canceladas, "
        f"{len(result.failed)} con error, reembolso {result.total_refund}"
    )
    return result


def group_stats(bookings: List[Booking], now: datetime) -> Dict[str, int]:
    stats = {
        "total": len(bookings),
        "confirmed": 0,
        "checked_in": 0,
        "completed": 0,
        "cancelled": 0,
        "upcoming": 0,
        "past": 0,
    }
    for booking in bookings:
        status = booking_lifecycle.effective_status(booking, now)
        if status == BookingStatus.CONFIRMED:
            stats["confirmed"] += 1
        elif status == BookingStatus.CHECKED_IN:
            stats["checked_in"] += 1
        elif status == BookingStatus.COMPLETED:
            stats["completed"] += 1
        elif status in (BookingStatus.CANCELLED, BookingStatus.CANCELLED_LATE):
            stats["cancelled"] += 1

        if booking.end_time <= now:
            stats["past"] += 1
        elif status not in TERMINAL_STATUSES:
            stats["upcoming"] += 1
    return stats


def get_group_details(
    db: Session, group_id: int, actor: User, now: Optional[datetime] = None
) -> Tuple[BookingGroup, Dict[str, int], List[Booking]]:
    now = now or datetime.now()
    group = _get_group(db, group_id, actor)
    bookings = group_crud.get_group_bookings(db, group_id)
    return group, group_stats(bookings, now), bookings
