"""
Tests de concurrencia: dos sesiones compitiendo por la misma cancha o la misma billetera
"""
import threading
from datetime import datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app.enums.booking_status import BookingStatus
from app.enums.payment import PaymentMethod, PaymentStatus
from app.enums.user_role import UserRole
from app.exceptions import InsufficientFundsError, SlotUnavailableError
from app.models.booking import Booking
from app.models.court import Court
from app.models.pricing_rule import PricingRule
from app.models.user import User
from app.schemas.admin import AdminBookingPatch, AdminUpdateOptions
from app.services import admin_override, booking_lifecycle, wallet_ledger

NOW = datetime(2030, 1, 7, 8, 0)
START = datetime(2030, 1, 7, 18, 0)
END = datetime(2030, 1, 7, 20, 0)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    db.add_all(
        [
            User(id=1, name="uno", email="uno@example.com", role=UserRole.CUSTOMER),
            User(id=2, name="dos", email="dos@example.com", role=UserRole.CUSTOMER),
            Court(id=1, name="Cancha 1", price_per_hour=Decimal("1")),
            Court(id=2, name="Cancha 2", price_per_hour=Decimal("1")),
            PricingRule(
                id=1,
                name="Todo el día",
                start_time=time(0, 0),
                end_time=time(0, 0),
                price_per_hour=Decimal("80000"),
                priority=0,
                is_active=True,
            ),
        ]
    )
    db.commit()
    db.close()

    yield factory
    engine.dispose()


def _run_together(factory, actions):
    """Ejecuta cada acción en su hilo y sesión, arrancando todas a la vez"""
    barrier = threading.Barrier(len(actions))
    outcomes = [None] * len(actions)

    def worker(index, action):
        db = factory()
        try:
            barrier.wait()
            outcomes[index] = action(db)
        except Exception as e:
            outcomes[index] = e
        finally:
            db.close()

    threads = [
        threading.Thread(target=worker, args=(i, action))
        for i, action in enumerate(actions)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def _book(user_id, court_id, payment_method=None):
    def action(db):
        user = db.get(User, user_id)
        booking = booking_lifecycle.create_booking(
            db, user, court_id, START, END, now=NOW, payment_method=payment_method
        )
        return booking.id

    return action


def test_only_one_of_two_concurrent_bookings_wins(session_factory):
    outcomes = _run_together(session_factory, [_book(1, 1), _book(2, 1)])

    winners = [o for o in outcomes if isinstance(o, int)]
    losers = [o for o in outcomes if isinstance(o, SlotUnavailableError)]
    assert len(winners) == 1
    assert len(losers) == 1

    db = session_factory()
    try:
        bookings = db.query(Booking).all()
        assert [b.id for b in bookings] == winners
        assert bookings[0].status == BookingStatus.PENDING_PAYMENT
    finally:
        db.close()


def test_concurrent_wallet_payments_never_overdraw(session_factory):
    db = session_factory()
    wallet_ledger.topup(db, 1, Decimal("160000"))
    db.close()

    outcomes = _run_together(
        session_factory,
        [
            _book(1, 1, PaymentMethod.WALLET),
            _book(1, 2, PaymentMethod.WALLET),
        ],
    )

    assert len([o for o in outcomes if isinstance(o, int)]) == 1
    assert len([o for o in outcomes if isinstance(o, InsufficientFundsError)]) == 1

    db = session_factory()
    try:
        assert wallet_ledger.get_balance(db, 1) == Decimal("0")
        wallet = wallet_ledger.get_or_create_wallet(db, 1)
        assert wallet_ledger.verify_ledger(db, wallet.id).is_consistent
        assert db.query(Booking).count() == 1
    finally:
        db.close()


def _paid_booking(code, court_id, user_id, start, end, status=BookingStatus.CONFIRMED):
    return Booking(
        booking_code=code,
        court_id=court_id,
        user_id=user_id,
        guest_name=None if user_id else "Torneo",
        start_time=start,
        end_time=end,
        total_price=Decimal("80000"),
        paid_amount=Decimal("80000") if user_id else Decimal("0"),
        refund_amount=Decimal("0"),
        status=status,
        payment_method=PaymentMethod.WALLET if user_id else None,
        payment_status=PaymentStatus.PAID if user_id else PaymentStatus.UNPAID,
    )


def test_concurrent_admin_overwrites_refund_wallets_in_order(session_factory):
    """Dos canchas con los dueños pisados en orden inverso: ninguna se traba"""
    middle = datetime(2030, 1, 7, 19, 0)
    db = session_factory()
    db.add(User(id=3, name="admin", email="admin@example.com", role=UserRole.ADMIN))
    db.add_all(
        [
            _paid_booking("BKTEST-0001", 1, None, START, END, BookingStatus.CANCELLED),
            _paid_booking("BKTEST-0002", 2, None, START, END, BookingStatus.CANCELLED),
            _paid_booking("BKTEST-0003", 1, 1, START, middle),
            _paid_booking("BKTEST-0004", 1, 2, middle, END),
            _paid_booking("BKTEST-0005", 2, 2, START, middle),
            _paid_booking("BKTEST-0006", 2, 1, middle, END),
        ]
    )
    db.commit()
    wallet_ledger.topup(db, 1, Decimal("1000"))
    wallet_ledger.topup(db, 2, Decimal("1000"))
    winner_ids = [
        b.id for b in db.query(Booking).filter(Booking.user_id.is_(None)).order_by(Booking.id)
    ]
    db.close()

    def reopen(booking_id):
        def action(db):
            admin = db.get(User, 3)
            result = admin_override.force_update(
                db,
                booking_id,
                admin,
                AdminBookingPatch(status=BookingStatus.CONFIRMED),
                AdminUpdateOptions(force_overwrite=True),
                now=NOW,
            )
            return len(result.conflicts)

        return action

    outcomes = _run_together(session_factory, [reopen(i) for i in winner_ids])
    assert outcomes == [2, 2]

    db = session_factory()
    try:
        for user_id in (1, 2):
            assert wallet_ledger.get_balance(db, user_id) == Decimal("161000")
            wallet = wallet_ledger.get_or_create_wallet(db, user_id)
            assert wallet_ledger.verify_ledger(db, wallet.id).is_consistent
        overwritten = db.query(Booking).filter(Booking.overwritten.is_(True)).count()
        assert overwritten == 4
    finally:
        db.close()
