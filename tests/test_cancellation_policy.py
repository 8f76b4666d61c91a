"""
Tests de la política de reembolso y de la cancelación de reservas pagadas
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.enums.booking_status import BookingStatus
from app.enums.payment import PaymentMethod, PaymentStatus
from app.exceptions import InvalidTransitionError, PermissionDeniedError
from app.services import booking_lifecycle, wallet_ledger
from app.services.cancellation_policy import compute_refund, refund_percentage

START = datetime(2030, 1, 9, 9, 0)
END = datetime(2030, 1, 9, 13, 0)


@pytest.mark.parametrize(
    "hours,expected",
    [
        (48, 100),
        (24, 100),
        (23.99, 50),
        (13, 50),
        (12, 50),
        (11.99, 0),
        (6, 0),
        (0, 0),
    ],
)
def test_refund_percentage_tiers(hours, expected):
    assert refund_percentage(hours) == expected


def test_refund_percentage_custom_thresholds():
    assert refund_percentage(10, full_refund_hours=10, half_refund_hours=5) == 100
    assert refund_percentage(5, full_refund_hours=10, half_refund_hours=5) == 50


def test_compute_refund_uses_paid_amount():
    amount, percentage = compute_refund(
        Decimal("75000"), START, START - timedelta(hours=13)
    )
    assert percentage == 50
    assert amount == Decimal("37500.00")


@pytest.fixture
def paid_booking(db, customer, court, pricing_rules, fund, now):
    fund(customer, "200000")
    booking = booking_lifecycle.create_booking(
        db, customer, court.id, START, END, now=now, payment_method=PaymentMethod.WALLET
    )
    assert booking.total_price == Decimal("200000")
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("0")
    return booking


@pytest.mark.parametrize(
    "hours_before,refund,status,payment_status",
    [
        (25, "200000", BookingStatus.CANCELLED, PaymentStatus.REFUNDED),
        (24, "200000", BookingStatus.CANCELLED, PaymentStatus.REFUNDED),
        (13, "100000", BookingStatus.CANCELLED, PaymentStatus.PARTIALLY_REFUNDED),
        (12, "100000", BookingStatus.CANCELLED, PaymentStatus.PARTIALLY_REFUNDED),
        (6, "0", BookingStatus.CANCELLED_LATE, PaymentStatus.PAID),
    ],
)
def test_cancel_paid_booking(
    db, customer, paid_booking, hours_before, refund, status, payment_status
):
    result = booking_lifecycle.cancel_booking(
        db, paid_booking.id, customer, now=START - timedelta(hours=hours_before)
    )

    assert result.refund_amount == Decimal(refund)
    assert result.booking.status == status
    assert result.booking.payment_status == payment_status
    assert result.booking.refund_amount == Decimal(refund)
    assert wallet_ledger.get_balance(db, customer.id) == Decimal(refund)


def test_late_cancellation_frees_the_slot(db, customer, other_customer, court, paid_booking):
    now = START - timedelta(hours=6)
    booking_lifecycle.cancel_booking(db, paid_booking.id, customer, now=now)

    booking = booking_lifecycle.create_booking(db, other_customer, court.id, START, END, now=now)
    assert booking.status == BookingStatus.PENDING_PAYMENT


def test_cancel_twice_is_rejected(db, customer, paid_booking, now):
    booking_lifecycle.cancel_booking(db, paid_booking.id, customer, now=now)
    with pytest.raises(InvalidTransitionError):
        booking_lifecycle.cancel_booking(db, paid_booking.id, customer, now=now)
    # Se reembolsó una sola vez
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("200000")


def test_full_refund_override_is_admin_only(db, customer, admin, paid_booking):
    late = START - timedelta(hours=1)
    with pytest.raises(PermissionDeniedError):
        booking_lifecycle.cancel_booking(db, paid_booking.id, customer, now=late, full_refund=True)

    result = booking_lifecycle.cancel_booking(
        db, paid_booking.id, admin, now=late, full_refund=True
    )
    assert result.refund_percentage == 100
    assert result.booking.status == BookingStatus.CANCELLED
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("200000")


def test_cancel_refund_events(db, customer, paid_booking, now, recorded_events):
    booking_lifecycle.cancel_booking(db, paid_booking.id, customer, now=now)

    names = [name for name, _ in recorded_events]
    assert names == ["booking:cancelled", "wallet:refunded"]
    assert recorded_events[1][1]["booking_id"] == paid_booking.id
