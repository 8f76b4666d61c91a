"""
Tests de reservas recurrentes: generación parcial, vista previa y cancelación de grupo
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from app.enums.booking_status import BookingGroupStatus, BookingStatus
from app.enums.payment import PaymentMethod
from app.enums.recurrence_pattern import RecurrencePattern
from app.exceptions import (
    BookingGroupNotFoundError,
    PermissionDeniedError,
    ValidationException,
)
from app.models.booking import Booking
from app.models.booking_group import BookingGroup
from app.services import booking_lifecycle, recurring, wallet_ledger

START = datetime(2030, 1, 7, 18, 0)
END = datetime(2030, 1, 7, 20, 0)


def test_expand_weekly_and_biweekly():
    weekly = recurring.expand_dates(START, END, RecurrencePattern.WEEKLY, 3)
    assert [s.date() for s, _ in weekly] == [
        date(2030, 1, 7),
        date(2030, 1, 14),
        date(2030, 1, 21),
    ]
    assert all(e - s == timedelta(hours=2) for s, e in weekly)

    biweekly = recurring.expand_dates(START, END, RecurrencePattern.BIWEEKLY, 2)
    assert biweekly[1][0] == datetime(2030, 1, 21, 18, 0)


def test_monthly_clamps_to_last_day_of_month():
    start = datetime(2030, 1, 31, 10, 0)
    monthly = recurring.expand_dates(
        start, start + timedelta(hours=1), RecurrencePattern.MONTHLY, 4
    )
    assert [s for s, _ in monthly] == [
        datetime(2030, 1, 31, 10, 0),
        datetime(2030, 2, 28, 10, 0),
        datetime(2030, 3, 31, 10, 0),
        datetime(2030, 4, 30, 10, 0),
    ]


def test_conflicting_occurrence_is_skipped(
    db, customer, other_customer, court, pricing_rules, now, recorded_events
):
    blocker = booking_lifecycle.create_booking(
        db,
        other_customer,
        court.id,
        datetime(2030, 1, 21, 19, 0),
        datetime(2030, 1, 21, 21, 0),
        now=now,
    )
    recorded_events.clear()

    result = recurring.generate_recurring(
        db, customer, court.id, START, END, RecurrencePattern.WEEKLY, 4, now=now
    )

    assert len(result.created) == 3
    assert {b.recurrence_group_id for b in result.created} == {result.group_id}
    assert [b.start_time.date() for b in result.created] == [
        date(2030, 1, 7),
        date(2030, 1, 14),
        date(2030, 1, 28),
    ]
    assert len(result.skipped) == 1
    assert result.skipped[0].date == date(2030, 1, 21)
    assert result.skipped[0].reason == recurring.SKIP_CONFLICT
    assert result.skipped[0].conflicting_codes == [blocker.booking_code]

    group = db.query(BookingGroup).one()
    assert group.pattern == RecurrencePattern.WEEKLY
    assert group.day_of_week == 1
    assert group.occurrences_requested == 4
    for booking in result.created:
        assert booking.recurrence_pattern == RecurrencePattern.WEEKLY
        assert booking.recurrence_day_of_week == 1
    assert [name for name, _ in recorded_events].count("booking:created") == 3


def test_preview_writes_nothing(db, customer, other_customer, court, pricing_rules, now):
    booking_lifecycle.create_booking(
        db,
        other_customer,
        court.id,
        datetime(2030, 1, 21, 18, 0),
        datetime(2030, 1, 21, 19, 0),
        now=now,
    )

    result = recurring.generate_recurring(
        db,
        customer,
        court.id,
        START,
        END,
        RecurrencePattern.WEEKLY,
        4,
        preview_only=True,
        now=now,
    )

    assert result.preview
    assert result.group is None
    assert [o.available for o in result.occurrences] == [True, True, False, True]
    assert result.estimated_total == Decimal("480000")
    assert len(result.cells) == 1
    assert result.cells[0].day_of_week == 1
    assert result.cells[0].hour == 18
    assert result.cells[0].available == 3
    assert result.cells[0].conflicting == 1
    assert db.query(Booking).count() == 1
    assert db.query(BookingGroup).count() == 0


def test_past_occurrences_are_skipped(db, customer, court, pricing_rules, now):
    start = datetime(2029, 12, 31, 18, 0)
    result = recurring.generate_recurring(
        db,
        customer,
        court.id,
        start,
        start + timedelta(hours=1),
        RecurrencePattern.WEEKLY,
        3,
        now=now,
    )
    assert len(result.created) == 2
    assert result.skipped[0].date == date(2029, 12, 31)
    assert result.skipped[0].reason == recurring.SKIP_PAST


def test_wallet_payment_stops_when_funds_run_out(db, customer, court, pricing_rules, fund, now):
    fund(customer, "320000")

    result = recurring.generate_recurring(
        db,
        customer,
        court.id,
        START,
        END,
        RecurrencePattern.WEEKLY,
        4,
        payment_method=PaymentMethod.WALLET,
        now=now,
    )

    assert len(result.created) == 2
    assert all(b.status == BookingStatus.CONFIRMED for b in result.created)
    assert [s.reason for s in result.skipped] == [recurring.SKIP_INSUFFICIENT_FUNDS] * 2
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("0")
    assert db.query(Booking).count() == 2


def test_nothing_created_leaves_no_group(db, customer, court, pricing_rules, now):
    result = recurring.generate_recurring(
        db,
        customer,
        court.id,
        START,
        END,
        RecurrencePattern.WEEKLY,
        2,
        payment_method=PaymentMethod.WALLET,
        now=now,
    )
    assert result.created == []
    assert result.group is None
    assert len(result.skipped) == 2
    assert db.query(BookingGroup).count() == 0


@pytest.mark.parametrize("occurrences", [0, 53])
def test_occurrence_limits(db, customer, court, pricing_rules, now, occurrences):
    with pytest.raises(ValidationException):
        recurring.generate_recurring(
            db, customer, court.id, START, END, RecurrencePattern.WEEKLY, occurrences, now=now
        )


@pytest.fixture
def paid_group(db, customer, court, pricing_rules, fund, now):
    fund(customer, "640000")
    result = recurring.generate_recurring(
        db,
        customer,
        court.id,
        START,
        END,
        RecurrencePattern.WEEKLY,
        4,
        payment_method=PaymentMethod.WALLET,
        now=now,
    )
    assert len(result.created) == 4
    return result


def test_cancel_group_collects_failures(db, customer, paid_group):
    first = paid_group.created[0]
    booking_lifecycle.check_in(db, first.id, customer, now=START)

    result = recurring.cancel_group(db, paid_group.group_id, customer, now=START)

    assert len(result.cancelled) == 3
    assert [f.booking_id for f in result.failed] == [first.id]
    assert result.total_refund == Decimal("480000")
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("480000")
    # Queda una reserva viva: el grupo sigue activo
    assert result.group.status == BookingGroupStatus.ACTIVE

    _, stats, bookings = recurring.get_group_details(
        db, paid_group.group_id, customer, now=START
    )
    assert len(bookings) == 4
    assert stats["total"] == 4
    assert stats["checked_in"] == 1
    assert stats["cancelled"] == 3
    assert stats["upcoming"] == 1
    assert stats["past"] == 0


def test_cancel_only_future_members(db, customer, paid_group):
    first = paid_group.created[0]
    booking_lifecycle.check_in(db, first.id, customer, now=START)

    result = recurring.cancel_group(
        db, paid_group.group_id, customer, now=START, cancel_only_future=True
    )
    assert len(result.cancelled) == 3
    assert result.failed == []


def test_cancel_whole_group(db, customer, paid_group, now):
    result = recurring.cancel_group(db, paid_group.group_id, customer, now=now)

    assert len(result.cancelled) == 4
    assert result.group.status == BookingGroupStatus.CANCELLED
    # La primera empieza en 10 horas: cae en el tramo sin reembolso
    assert result.cancelled[0].status == BookingStatus.CANCELLED_LATE
    assert result.total_refund == Decimal("480000")
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("480000")


def test_group_permissions(db, customer, other_customer, staff, paid_group, now):
    with pytest.raises(PermissionDeniedError):
        recurring.cancel_group(db, paid_group.group_id, other_customer, now=now)
    with pytest.raises(BookingGroupNotFoundError):
        recurring.get_group_details(db, 999, staff, now=now)

    group, stats, _ = recurring.get_group_details(db, paid_group.group_id, staff, now=now)
    assert group.user_id == customer.id
    assert stats["confirmed"] == 4
    assert stats["upcoming"] == 4
