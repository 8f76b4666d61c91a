"""
Ciclo de vida de una reserva.

    PENDING_PAYMENT -> CONFIRMED | EXPIRED | CANCELLED
    CONFIRMED       -> CHECKED_IN | CANCELLED | CANCELLED_LATE
    CHECKED_IN      -> COMPLETED
    BLOCKED         (solo lo levanta un admin)

Cada operación que toca reserva y billetera corre dentro de un único `atomic`.
Los eventos se publican después del commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app import config
from app.crud import wallet as wallet_crud
from app.database import atomic
from app.enums.booking_status import BookingStatus
from app.enums.booking_type import BookingActor, BookingType
from app.enums.payment import PaymentMethod, PaymentStatus
from app.enums.recurrence_pattern import RecurrencePattern
from app.enums.transaction_type import TransactionType
from app.enums.user_role import UserRole
from app.exceptions import (
    BookingExpiredError,
    BookingNotFoundError,
    CheckInWindowError,
    CourtNotFoundError,
    InsufficientFundsError,
    InvalidIntervalError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotUnavailableError,
    ValidationException,
)
from app.models.booking import Booking
from app.models.court import Court
from app.models.user import User
from app.models.wallet import WalletTransaction
from app.services import availability, cancellation_policy, pricing, wallet_ledger
from app.services.events import (
    BOOKING_CANCELLED,
    BOOKING_CHECKED_IN,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_CREATED,
    BOOKING_EXPIRED,
    WALLET_REFUNDED,
    booking_payload,
    event_bus,
)
from app.utils.booking_code import generate_booking_code
from app.utils.locking import lock_booking, lock_court

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class CancellationResult:
    booking: Booking
    refund_amount: Decimal
    refund_percentage: int
    wallet_transaction: Optional[WalletTransaction] = None


def effective_status(booking: Booking, now: Optional[datetime] = None) -> BookingStatus:
    """Estado leído en `now`: una retención vencida se informa como EXPIRED"""
    now = now or datetime.now()
    if (
        booking.status == BookingStatus.PENDING_PAYMENT
        and booking.expires_at is not None
        and booking.expires_at <= now
    ):
        return BookingStatus.EXPIRED
    return booking.status


def actor_type(user: User) -> BookingActor:
    if user.role == UserRole.ADMIN:
        return BookingActor.ADMIN
    if user.role == UserRole.STAFF:
        return BookingActor.STAFF
    return BookingActor.CUSTOMER


def _check_can_manage(booking: Booking, actor: User) -> None:
    if actor.is_staff:
        return
    if booking.user_id is None or booking.user_id != actor.id:
        raise PermissionDeniedError(
            "You can only manage your own bookings",
            details={"booking_id": booking.id},
        )


def _get_locked_booking(db: Session, booking_id: int) -> Booking:
    booking = lock_booking(db, booking_id)
    if booking is None:
        raise BookingNotFoundError(
            f"Booking {booking_id} not found", details={"booking_id": booking_id}
        )
    return booking


def _mark_paid(booking: Booking, amount: Decimal, method: PaymentMethod) -> None:
    booking.paid_amount = amount
    booking.payment_method = method
    booking.payment_status = PaymentStatus.PAID
    booking.status = BookingStatus.CONFIRMED
    booking.expires_at = None


def _debit_booking(db: Session, booking: Booking, wallet_id: int) -> None:
    if Decimal(booking.total_price) > 0:
        wallet_ledger.debit(
            db,
            wallet_id,
            booking.total_price,
            TransactionType.PAYMENT,
            booking_id=booking.id,
            description=f"Pago de reserva {booking.booking_code}",
        )
    _mark_paid(booking, Decimal(booking.total_price), PaymentMethod.WALLET)


def refund_to_owner(
    db: Session, booking: Booking, amount: Decimal, description: str
) -> Optional[WalletTransaction]:
    """
    Acredita `amount` en la billetera del dueño. Los invitados no tienen
    billetera: el reembolso solo se informa.
    """
    if amount <= 0 or booking.user_id is None:
        return None
    wallet = wallet_ledger.get_or_create_wallet(db, booking.user_id)
    return wallet_ledger.credit(
        db,
        wallet.id,
        amount,
        TransactionType.REFUND,
        booking_id=booking.id,
        description=description,
    )


def _validate_request(
    actor: User,
    start: datetime,
    now: datetime,
    payment_method: Optional[PaymentMethod],
    booking_type: BookingType,
    guest_name: Optional[str],
) -> None:
    if start < now:
        raise InvalidIntervalError(
            "Cannot book a slot in the past", details={"start": start.isoformat()}
        )
    if booking_type == BookingType.MAINTENANCE and not actor.is_staff:
        raise PermissionDeniedError("Only staff can block courts for maintenance")
    if guest_name and not actor.is_staff:
        raise PermissionDeniedError("Only staff can create guest bookings")
    if payment_method == PaymentMethod.CASH and not actor.is_staff:
        raise PermissionDeniedError("Cash payments are registered by staff only")


def book_locked_court(
    db: Session,
    court: Court,
    actor: User,
    start: datetime,
    end: datetime,
    now: datetime,
    payment_method: Optional[PaymentMethod] = None,
    booking_type: BookingType = BookingType.REGULAR,
    guest_name: Optional[str] = None,
    guest_phone: Optional[str] = None,
    recurrence: Optional[Tuple[int, RecurrencePattern, int]] = None,
) -> Booking:
    """
    Verifica disponibilidad e inserta la reserva. La cancha ya tiene que estar
    bloqueada por la transacción en curso.

    Si algo falla se lanza antes de escribir: no queda estado parcial aunque la
    transacción siga abierta (la generación recurrente depende de esto).

    Args:
        recurrence: (group_id, patrón, día de la semana) para reservas de un grupo

    Raises:
        SlotUnavailableError: el intervalo se solapa con reservas vigentes
        InsufficientFundsError: pago con billetera sin saldo suficiente
        NoPricingRuleError: ninguna regla cubre parte del intervalo
    """
    conflicts = availability.find_conflicts(db, court.id, start, end, now)
    if conflicts:
        raise SlotUnavailableError(
            "The requested slot is not available",
            details={"conflicts": availability.conflict_details(conflicts)},
        )

    booking = Booking(
        booking_code=generate_booking_code(db, now),
        court_id=court.id,
        start_time=start,
        end_time=end,
        type=booking_type,
        paid_amount=ZERO,
        refund_amount=ZERO,
        payment_status=PaymentStatus.UNPAID,
        created_by=actor_type(actor),
        created_by_staff_id=actor.id if actor.is_staff else None,
    )

    if recurrence is not None:
        group_id, pattern, day = recurrence
        booking.recurrence_group_id = group_id
        booking.recurrence_pattern = pattern
        booking.recurrence_day_of_week = day

    wallet = None
    if booking_type == BookingType.MAINTENANCE:
        booking.total_price = ZERO
        booking.status = BookingStatus.BLOCKED
    else:
        booking.total_price = pricing.resolve_price(db, court.id, start, end).total
        if guest_name:
            booking.guest_name = guest_name
            booking.guest_phone = guest_phone
            payment_method = PaymentMethod.CASH
        else:
            booking.user_id = actor.id

        if payment_method == PaymentMethod.WALLET:
            wallet = wallet_crud.get_wallet_by_user(db, actor.id)
            if wallet is None:
                raise InsufficientFundsError(
                    "User has no wallet balance", details={"user_id": actor.id}
                )
            wallet_ledger.ensure_funds(db, wallet.id, booking.total_price)

        if payment_method == PaymentMethod.CASH:
            _mark_paid(booking, booking.total_price, PaymentMethod.CASH)
        else:
            booking.status = BookingStatus.PENDING_PAYMENT
            booking.payment_method = payment_method
            booking.expires_at = now + timedelta(minutes=config.BOOKING_HOLD_MINUTES)

    db.add(booking)
    db.flush()

    if wallet is not None:
        _debit_booking(db, booking, wallet.id)

    logger.info(
        f"Reserva {booking.booking_code} creada en cancha {court.id} "
        f"{start} - {end} ({booking.status.value}, {booking.total_price})"
    )
    return booking


def create_booking(
    db: Session,
    actor: User,
    court_id: int,
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
    payment_method: Optional[PaymentMethod] = None,
    booking_type: BookingType = BookingType.REGULAR,
    guest_name: Optional[str] = None,
    guest_phone: Optional[str] = None,
) -> Booking:
    """
    Crea una reserva.

    Sin método de pago (o con GATEWAY) queda PENDING_PAYMENT con una retención de
    BOOKING_HOLD_MINUTES. Con WALLET se crea y se paga en la misma transacción;
    con CASH (solo staff) y para invitados queda CONFIRMED y pagada. Un bloqueo de
    mantenimiento queda BLOCKED sin precio.
    """
    now = now or datetime.now()
    pricing.validate_interval(start, end)
    _validate_request(actor, start, now, payment_method, booking_type, guest_name)

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
        booking = book_locked_court(
            db,
            court,
            actor,
            start,
            end,
            now,
            payment_method=payment_method,
            booking_type=booking_type,
            guest_name=guest_name,
            guest_phone=guest_phone,
        )

    publish_created(booking)
    return booking


def publish_created(booking: Booking) -> None:
    payload = booking_payload(booking)
    event_bus.publish(BOOKING_CREATED, payload)
    if booking.status == BookingStatus.CONFIRMED:
        event_bus.publish(BOOKING_CONFIRMED, payload)


def pay_booking(
    db: Session,
    booking_id: int,
    actor: User,
    method: PaymentMethod = PaymentMethod.WALLET,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Liquida una retención. Con saldo insuficiente la reserva sigue en
    PENDING_PAYMENT y se puede reintentar después de cargar saldo.
    """
    now = now or datetime.now()

    if method == PaymentMethod.GATEWAY:
        raise ValidationException(
            "Gateway payments are confirmed through the gateway callback"
        )
    if method == PaymentMethod.CASH and not actor.is_staff:
        raise PermissionDeniedError("Cash payments are registered by staff only")

    with atomic(db):
        booking = _get_locked_booking(db, booking_id)
        _check_can_manage(booking, actor)

        status = effective_status(booking, now)
        if status == BookingStatus.EXPIRED and booking.status == BookingStatus.PENDING_PAYMENT:
            raise BookingExpiredError(
                "The payment hold for this booking has expired",
                details={"booking_id": booking.id},
            )
        if status != BookingStatus.PENDING_PAYMENT:
            raise InvalidTransitionError(
                f"Cannot pay a booking in status {status.value}",
                details={"booking_id": booking.id, "status": status.value},
            )

        if method == PaymentMethod.WALLET:
            if booking.user_id is None:
                raise ValidationException("Guest bookings cannot be paid by wallet")
            wallet = wallet_crud.get_wallet_by_user(db, booking.user_id)
            if wallet is None:
                raise InsufficientFundsError(
                    "User has no wallet balance", details={"user_id": booking.user_id}
                )
            _debit_booking(db, booking, wallet.id)
        else:
            _mark_paid(booking, Decimal(booking.total_price), PaymentMethod.CASH)

    logger.info(f"Reserva {booking.booking_code} pagada con {method.value}")
    event_bus.publish(BOOKING_CONFIRMED, booking_payload(booking))
    return booking


def apply_gateway_outcome(
    db: Session,
    booking_id: int,
    success: bool,
    amount_paid: Decimal,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Aplica el resultado (ya verificado) de la pasarela de pagos.

    Es idempotente: una reserva ya pagada se devuelve sin cambios. Si el pago
    llega después de vencida la retención, se confirma solo si el turno sigue
    libre; si no, la reserva queda EXPIRED y lo cobrado se acredita en la
    billetera del dueño.
    """
    now = now or datetime.now()
    amount_paid = Decimal(amount_paid)
    events: List[Tuple[str, dict]] = []

    with atomic(db):
        booking = _get_locked_booking(db, booking_id)

        if booking.payment_status == PaymentStatus.PAID:
            logger.info(f"Pago de {booking.booking_code} ya procesado")
            return booking

        if not success:
            if booking.status == BookingStatus.PENDING_PAYMENT:
                booking.payment_status = PaymentStatus.FAILED
            logger.warning(f"Pago rechazado por la pasarela para {booking.booking_code}")
            return booking

        if amount_paid != Decimal(booking.total_price):
            raise ValidationException(
                "Paid amount does not match the booking price",
                details={
                    "booking_id": booking.id,
                    "amount_paid": str(amount_paid),
                    "total_price": str(booking.total_price),
                },
            )

        status = effective_status(booking, now)
        revivable = status in (BookingStatus.PENDING_PAYMENT, BookingStatus.EXPIRED)
        if status == BookingStatus.PENDING_PAYMENT or (
            revivable
            and availability.is_free(
                db,
                booking.court_id,
                booking.start_time,
                booking.end_time,
                now,
                excluding_booking_id=booking.id,
            )
        ):
            _mark_paid(booking, amount_paid, PaymentMethod.GATEWAY)
            events.append((BOOKING_CONFIRMED, booking_payload(booking)))
        else:
            # Pago tardío: el turno ya no se puede dar
            booking.paid_amount = amount_paid
            booking.payment_method = PaymentMethod.GATEWAY
            if revivable:
                booking.status = BookingStatus.EXPIRED
                booking.expires_at = None
                events.append((BOOKING_EXPIRED, booking_payload(booking)))
            transaction = refund_to_owner(
                db, booking, amount_paid, f"Reembolso por pago tardío {booking.booking_code}"
            )
            booking.refund_amount = amount_paid
            booking.payment_status = PaymentStatus.REFUNDED
            if transaction is not None:
                events.append((WALLET_REFUNDED, refund_payload(booking, transaction)))
            logger.warning(
                f"Pago tardío de {booking.booking_code}: turno ocupado, "
                f"{amount_paid} reembolsado"
            )

    for name, payload in events:
        event_bus.publish(name, payload)
    return booking


def refund_payload(booking: Booking, transaction: WalletTransaction) -> dict:
    return {
        "booking_id": booking.id,
        "booking_code": booking.booking_code,
        "user_id": booking.user_id,
        "amount": str(transaction.amount),
        "wallet_transaction_id": transaction.id,
    }


def cancel_in_transaction(
    db: Session,
    booking: Booking,
    actor: User,
    now: datetime,
    reason: Optional[str] = None,
    full_refund: bool = False,
) -> CancellationResult:
    """Cancela una reserva ya bloqueada; no hace commit"""
    _check_can_manage(booking, actor)
    status = effective_status(booking, now)

    if status == BookingStatus.PENDING_PAYMENT:
        refund, percentage = ZERO, 0
        booking.status = BookingStatus.CANCELLED
        booking.expires_at = None
    elif status == BookingStatus.CONFIRMED:
        paid = Decimal(booking.paid_amount)
        if full_refund:
            refund, percentage = paid, 100
        else:
            refund, percentage = cancellation_policy.compute_refund(
                paid, booking.start_time, now
            )
        booking.status = (
            BookingStatus.CANCELLED if percentage > 0 else BookingStatus.CANCELLED_LATE
        )
    else:
        raise InvalidTransitionError(
            f"Cannot cancel a booking in status {status.value}",
            details={"booking_id": booking.id, "status": status.value},
        )

    transaction = refund_to_owner(
        db, booking, refund, f"Reembolso por cancelación {booking.booking_code}"
    )
    if refund > 0:
        if refund >= Decimal(booking.paid_amount):
            booking.payment_status = PaymentStatus.REFUNDED
        else:
            booking.payment_status = PaymentStatus.PARTIALLY_REFUNDED

    booking.refund_amount = refund
    booking.cancelled_at = now
    booking.cancellation_reason = reason
    db.flush()

    logger.info(
        f"Reserva {booking.booking_code} cancelada ({booking.status.value}), "
        f"reembolso {refund} ({percentage}%)"
    )
    return CancellationResult(
        booking=booking,
        refund_amount=refund,
        refund_percentage=percentage,
        wallet_transaction=transaction,
    )


def cancel_booking(
    db: Session,
    booking_id: int,
    actor: User,
    now: Optional[datetime] = None,
    reason: Optional[str] = None,
    full_refund: bool = False,
) -> CancellationResult:
    """
    Cancela la reserva y reembolsa según la política, en una sola transacción.

    Una retención sin pagar se cancela sin reembolso. Una reserva confirmada
    reembolsa un porcentaje de lo pagado según las horas que faltan; en el
    tramo del 0% queda CANCELLED_LATE.
    """
    now = now or datetime.now()
    if full_refund and not actor.is_admin:
        raise PermissionDeniedError("Only admins can force a full refund")

    with atomic(db):
        booking = _get_locked_booking(db, booking_id)
        result = cancel_in_transaction(db, booking, actor, now, reason, full_refund)

    event_bus.publish(BOOKING_CANCELLED, booking_payload(result.booking))
    if result.wallet_transaction is not None:
        event_bus.publish(
            WALLET_REFUNDED, refund_payload(result.booking, result.wallet_transaction)
        )
    return result


def check_in(
    db: Session, booking_id: int, actor: User, now: Optional[datetime] = None
) -> Booking:
    """Registra la llegada: desde CHECK_IN_WINDOW_MINUTES antes del inicio hasta el fin"""
    now = now or datetime.now()

    with atomic(db):
        booking = _get_locked_booking(db, booking_id)
        _check_can_manage(booking, actor)

        status = effective_status(booking, now)
        if status != BookingStatus.CONFIRMED:
            raise InvalidTransitionError(
                f"Cannot check in a booking in status {status.value}",
                details={"booking_id": booking.id, "status": status.value},
            )

        opens_at = booking.start_time - timedelta(minutes=config.CHECK_IN_WINDOW_MINUTES)
        if not (opens_at <= now < booking.end_time):
            raise CheckInWindowError(
                "Check-in is outside the allowed window",
                details={
                    "booking_id": booking.id,
                    "window_opens_at": opens_at.isoformat(),
                    "window_closes_at": booking.end_time.isoformat(),
                },
            )

        booking.status = BookingStatus.CHECKED_IN
        booking.checked_in_at = now

    logger.info(f"Check-in de {booking.booking_code} a las {now}")
    event_bus.publish(BOOKING_CHECKED_IN, booking_payload(booking))
    return booking


def finish_booking(
    db: Session, booking_id: int, actor: User, now: Optional[datetime] = None
) -> Booking:
    """Termina antes de hora una reserva en juego (solo staff)"""
    now = now or datetime.now()
    if not actor.is_staff:
        raise PermissionDeniedError("Only staff can finish a session early")

    with atomic(db):
        booking = _get_locked_booking(db, booking_id)

        if booking.status != BookingStatus.CHECKED_IN:
            raise InvalidTransitionError(
                f"Cannot finish a booking in status {booking.status.value}",
                details={"booking_id": booking.id, "status": booking.status.value},
            )
        booking.status = BookingStatus.COMPLETED
        booking.completed_at = now

    logger.info(f"Reserva {booking.booking_code} finalizada")
    event_bus.publish(BOOKING_COMPLETED, booking_payload(booking))
    return booking
