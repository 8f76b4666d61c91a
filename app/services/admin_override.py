"""
Camino privilegiado de administración.

Puede mover una reserva a un turno ocupado (forzando) y cambiar su estado sin
pasar por las transiciones normales. Todo lo que pisa queda cancelado con
`overwritten = True` en la misma transacción, cada diferencia de precio se
informa al llamador y cada intervención deja un AdminAction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app import config
from app.crud import booking as booking_crud
from app.crud import wallet as wallet_crud
from app.database import atomic
from app.enums.booking_status import BookingStatus, HOLDING_STATUSES
from app.enums.payment import PaymentStatus
from app.enums.transaction_type import TransactionType
from app.exceptions import (
    BookingNotFoundError,
    CourtNotFoundError,
    InsufficientFundsError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotUnavailableError,
)
from app.models.admin_action import AdminAction
from app.models.booking import Booking
from app.models.user import User
from app.models.wallet import WalletTransaction
from app.schemas.admin import AdminBookingPatch, AdminUpdateOptions
from app.services import availability, pricing, wallet_ledger
from app.services.booking_lifecycle import (
    effective_status,
    refund_payload,
    refund_to_owner,
)
from app.services.events import (
    BOOKING_CANCELLED,
    BOOKING_UPDATED,
    WALLET_REFUNDED,
    booking_payload,
    event_bus,
)
from app.utils.locking import lock_courts, lock_user_wallets

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

ACTION_FORCE_UPDATE = "FORCE_UPDATE"
ACTION_LIFT_BLOCK = "LIFT_BLOCK"


@dataclass
class PriceChange:
    old_price: Decimal
    new_price: Decimal
    difference: Decimal
    refunded: Decimal = ZERO
    charged: Decimal = ZERO
    pending_collection: Decimal = ZERO
    settled: bool = False


@dataclass
class OverwrittenConflict:
    booking_id: int
    booking_code: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    overwritten: bool = False
    refund_amount: Decimal = ZERO


@dataclass
class AdminUpdateResult:
    booking: Booking
    price_change: Optional[PriceChange] = None
    conflicts: List[OverwrittenConflict] = field(default_factory=list)
    admin_action: Optional[AdminAction] = None

    @property
    def admin_action_id(self) -> Optional[int]:
        return self.admin_action.id if self.admin_action else None


def _require_admin(actor: User) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("Only admins can override bookings")


def _overwrite(
    db: Session, victim: Booking, winner: Booking, now: datetime
) -> Tuple[OverwrittenConflict, Optional[WalletTransaction]]:
    """Cancela una reserva pisada por el admin y le devuelve todo lo pagado"""
    previous_status = victim.status
    refund = Decimal(victim.paid_amount)
    transaction = refund_to_owner(
        db, victim, refund, "Reembolso: turno reasignado por administración"
    )

    victim.status = BookingStatus.CANCELLED
    victim.overwritten = True
    victim.expires_at = None
    victim.cancelled_at = now
    victim.cancellation_reason = f"Overwritten by admin update of {winner.booking_code}"
    victim.refund_amount = refund
    if refund > 0:
        victim.payment_status = PaymentStatus.REFUNDED

    logger.warning(
        f"Reserva {victim.booking_code} ({previous_status.value}) pisada por "
        f"{winner.booking_code}, reembolso {refund}"
    )
    conflict = OverwrittenConflict(
        booking_id=victim.id,
        booking_code=victim.booking_code,
        start_time=victim.start_time,
        end_time=victim.end_time,
        status=previous_status,
        overwritten=True,
        refund_amount=refund,
    )
    return conflict, transaction


def _settle_price(
    db: Session, booking: Booking, new_price: Decimal, options: AdminUpdateOptions
) -> Tuple[PriceChange, Optional[WalletTransaction]]:
    old_price = Decimal(booking.total_price)
    paid = Decimal(booking.paid_amount)
    change = PriceChange(
        old_price=old_price, new_price=new_price, difference=new_price - old_price
    )
    booking.total_price = new_price
    refund_transaction = None

    if paid == 0:
        # Nada cobrado todavía: el precio nuevo es el que se va a cobrar
        change.settled = True
        return change, None

    if paid > new_price:
        overpaid = paid - new_price
        if options.refund_to_wallet and booking.user_id is not None:
            refund_transaction = refund_to_owner(
                db, booking, overpaid, f"Diferencia de precio {booking.booking_code}"
            )
            booking.paid_amount = new_price
            booking.refund_amount = Decimal(booking.refund_amount or 0) + overpaid
            change.refunded = overpaid
    elif paid < new_price:
        owed = new_price - paid
        if options.charge_extra_to_wallet and booking.user_id is not None:
            wallet = wallet_crud.get_wallet_by_user(db, booking.user_id)
            if wallet is None:
                raise InsufficientFundsError(
                    "User has no wallet balance", details={"user_id": booking.user_id}
                )
            wallet_ledger.debit(
                db,
                wallet.id,
                owed,
                TransactionType.PAYMENT,
                booking_id=booking.id,
                description=f"Diferencia de precio {booking.booking_code}",
            )
            booking.paid_amount = new_price
            change.charged = owed
        else:
            change.pending_collection = owed

    settled_paid = Decimal(booking.paid_amount)
    change.settled = settled_paid == new_price
    booking.payment_status = (
        PaymentStatus.PAID if settled_paid >= new_price else PaymentStatus.PARTIALLY_PAID
    )
    return change, refund_transaction


def _apply_status(
    db: Session,
    booking: Booking,
    new_status: BookingStatus,
    options: AdminUpdateOptions,
    now: datetime,
) -> Optional[WalletTransaction]:
    transaction = None
    if new_status == BookingStatus.CANCELLED:
        refund = ZERO
        if options.refund_to_wallet:
            refund = Decimal(booking.paid_amount)
            transaction = refund_to_owner(
                db, booking, refund, f"Reembolso por cancelación {booking.booking_code}"
            )
            if refund > 0:
                booking.payment_status = PaymentStatus.REFUNDED
        booking.refund_amount = refund
        booking.cancelled_at = now
        booking.cancellation_reason = options.admin_note or "Cancelled by admin"
    elif new_status == BookingStatus.CHECKED_IN:
        booking.checked_in_at = booking.checked_in_at or now
    elif new_status == BookingStatus.COMPLETED:
        booking.completed_at = booking.completed_at or now
    elif new_status == BookingStatus.PENDING_PAYMENT:
        # Retención nueva: vuelve a correr el plazo de pago
        booking.expires_at = now + timedelta(minutes=config.BOOKING_HOLD_MINUTES)
        booking.cancelled_at = None
        booking.cancellation_reason = None
        booking.overwritten = False

    if new_status != BookingStatus.PENDING_PAYMENT:
        booking.expires_at = None
    booking.status = new_status
    return transaction


def _json_safe(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "value"):
        return value.value
    return value


def force_update(
    db: Session,
    booking_id: int,
    admin: User,
    patch: AdminBookingPatch,
    options: AdminUpdateOptions,
    now: Optional[datetime] = None,
) -> AdminUpdateResult:
    """
    Aplica un cambio administrativo a la reserva en una sola transacción.

    Sin force_overwrite un conflicto con otras reservas vigentes aborta todo y
    se informa en SlotUnavailableError. Con force_overwrite cada reserva en
    conflicto queda CANCELLED, overwritten y reembolsada completa.

    Con recalculate_price se vuelve a cotizar; la diferencia se reembolsa
    (refund_to_wallet) o se cobra (charge_extra_to_wallet), y siempre se
    devuelve en price_change aunque no se liquide.
    """
    now = now or datetime.now()
    _require_admin(admin)
    events = []

    with atomic(db):
        current = booking_crud.get_booking(db, booking_id)
        if current is None:
            raise BookingNotFoundError(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )

        new_court_id = patch.court_id or current.court_id
        courts = lock_courts(db, {current.court_id, new_court_id})
        if courts.get(new_court_id) is None:
            raise CourtNotFoundError(
                f"Court {new_court_id} not found", details={"court_id": new_court_id}
            )

        booking = (
            db.query(Booking)
            .filter(Booking.id == booking_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        before = {
            "court_id": booking.court_id,
            "start_time": booking.start_time,
            "end_time": booking.end_time,
            "status": booking.status,
            "total_price": booking.total_price,
        }

        new_start = patch.start_time or booking.start_time
        new_end = patch.end_time or booking.end_time
        pricing.validate_interval(new_start, new_end)

        current_status = effective_status(booking, now)
        target_status = patch.status or current_status
        moved = (
            new_court_id != booking.court_id
            or new_start != booking.start_time
            or new_end != booking.end_time
        )
        becomes_holding = target_status in HOLDING_STATUSES
        reactivated = target_status != current_status and current_status not in HOLDING_STATUSES

        result = AdminUpdateResult(booking=booking)
        if becomes_holding and (moved or reactivated):
            conflicts = availability.find_conflicts(
                db, new_court_id, new_start, new_end, now, excluding_booking_id=booking.id
            )
            if conflicts and not options.force_overwrite:
                raise SlotUnavailableError(
                    "The new slot overlaps other bookings; use force_overwrite to replace them",
                    details={"conflicts": availability.conflict_details(conflicts)},
                )
            if conflicts:
                lock_user_wallets(
                    db, [victim.user_id for victim in conflicts] + [booking.user_id]
                )
            for victim in conflicts:
                conflict, transaction = _overwrite(db, victim, booking, now)
                result.conflicts.append(conflict)
                events.append((BOOKING_CANCELLED, booking_payload(victim)))
                if transaction is not None:
                    events.append((WALLET_REFUNDED, refund_payload(victim, transaction)))

        booking.court_id = new_court_id
        booking.start_time = new_start
        booking.end_time = new_end

        if options.recalculate_price:
            quote = pricing.resolve_price(db, new_court_id, new_start, new_end)
            price_change, transaction = _settle_price(db, booking, quote.total, options)
            result.price_change = price_change
            if transaction is not None:
                events.append((WALLET_REFUNDED, refund_payload(booking, transaction)))

        if patch.status is not None and patch.status != current_status:
            transaction = _apply_status(db, booking, patch.status, options, now)
            if transaction is not None:
                events.append((WALLET_REFUNDED, refund_payload(booking, transaction)))

        if options.admin_note:
            booking.admin_note = options.admin_note
        db.flush()

        after = {
            "court_id": booking.court_id,
            "start_time": booking.start_time,
            "end_time": booking.end_time,
            "status": booking.status,
            "total_price": booking.total_price,
        }
        action = AdminAction(
            admin_id=admin.id,
            booking_id=booking.id,
            action=ACTION_FORCE_UPDATE,
            details={
                "before": {k: _json_safe(v) for k, v in before.items()},
                "after": {k: _json_safe(v) for k, v in after.items()},
                "options": options.model_dump(exclude={"admin_note"}),
                "overwritten": [c.booking_code for c in result.conflicts],
                "price_difference": _json_safe(result.price_change.difference)
                if result.price_change
                else None,
            },
            note=options.admin_note,
        )
        db.add(action)
        db.flush()
        result.admin_action = action

    logger.info(
        f"Admin {admin.id} actualizó {booking.booking_code}: "
        f"{len(result.conflicts)} reservas pisadas"
    )
    event_bus.publish(BOOKING_UPDATED, booking_payload(booking))
    if booking.status == BookingStatus.CANCELLED:
        event_bus.publish(BOOKING_CANCELLED, booking_payload(booking))
    for name, payload in events:
        event_bus.publish(name, payload)
    return result


def lift_block(
    db: Session,
    booking_id: int,
    admin: User,
    now: Optional[datetime] = None,
    note: Optional[str] = None,
) -> Booking:
    """Levanta un bloqueo de mantenimiento (BLOCKED -> CANCELLED)"""
    now = now or datetime.now()
    _require_admin(admin)

    with atomic(db):
        booking = booking_crud.get_booking(db, booking_id)
        if booking is None:
            raise BookingNotFoundError(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        lock_courts(db, [booking.court_id])
        db.refresh(booking)

        if booking.status != BookingStatus.BLOCKED:
            raise InvalidTransitionError(
                "Only blocked slots can be lifted",
                details={"booking_id": booking.id, "status": booking.status.value},
            )

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = now
        booking.cancellation_reason = note or "Block lifted"
        db.add(
            AdminAction(
                admin_id=admin.id,
                booking_id=booking.id,
                action=ACTION_LIFT_BLOCK,
                details={"court_id": booking.court_id},
                note=note,
            )
        )

    logger.info(f"Admin {admin.id} levantó el bloqueo {booking.booking_code}")
    event_bus.publish(BOOKING_CANCELLED, booking_payload(booking))
    return booking
