"""
Tests del libro mayor de billeteras
"""
from decimal import Decimal

import pytest

from app.database import atomic
from app.enums.transaction_type import TransactionType
from app.exceptions import (
    InsufficientFundsError,
    LedgerIntegrityError,
    ValidationException,
    WalletNotFoundError,
)
from app.services import wallet_ledger


def test_topup_creates_wallet_and_records_transaction(db, customer, recorded_events):
    transaction = wallet_ledger.topup(db, customer.id, Decimal("100000"))

    assert transaction.type == TransactionType.TOPUP
    assert transaction.balance_before == Decimal("0")
    assert transaction.balance_after == Decimal("100000")
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("100000")
    assert recorded_events[-1][0] == "wallet:topped_up"
    assert Decimal(recorded_events[-1][1]["balance"]) == Decimal("100000")


def test_balance_equals_replay_of_transactions(db, customer, fund):
    wallet = fund(customer, "100000")
    wallet_ledger.topup(db, customer.id, Decimal("50000"))
    with atomic(db):
        wallet_ledger.debit(db, wallet.id, Decimal("30000"), TransactionType.PAYMENT)
        wallet_ledger.credit(db, wallet.id, Decimal("15000"), TransactionType.REFUND)
    wallet_ledger.withdraw(db, customer.id, Decimal("5000"))

    transactions = wallet_ledger.list_transactions(db, customer.id)
    replayed = sum(
        wallet_ledger.signed_amount(t.type, t.amount) for t in transactions
    )
    assert replayed == Decimal("130000")
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("130000")

    # Cada movimiento encadena con el anterior
    for previous, current in zip(transactions, transactions[1:]):
        assert current.balance_before == previous.balance_after

    report = wallet_ledger.verify_ledger(db, wallet.id)
    assert report.is_consistent
    assert report.transaction_count == 5
    assert report.first_mismatch_transaction_id is None


def test_debit_more_than_balance_fails_without_changes(db, customer, fund):
    wallet = fund(customer, "50000")

    with pytest.raises(InsufficientFundsError):
        with atomic(db):
            wallet_ledger.debit(db, wallet.id, Decimal("50000.01"))

    assert wallet_ledger.get_balance(db, customer.id) == Decimal("50000")
    assert len(wallet_ledger.list_transactions(db, customer.id)) == 1


def test_debit_whole_balance_leaves_zero(db, customer, fund):
    wallet = fund(customer, "50000")
    with atomic(db):
        wallet_ledger.debit(db, wallet.id, Decimal("50000"))
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("0")


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_amounts_are_rejected(db, customer, fund, amount):
    wallet = fund(customer, "1000")
    with pytest.raises(ValidationException):
        with atomic(db):
            wallet_ledger.credit(db, wallet.id, Decimal(amount))


def test_transaction_type_must_match_direction(db, customer, fund):
    wallet = fund(customer, "1000")
    with pytest.raises(ValidationException):
        wallet_ledger.credit(db, wallet.id, Decimal("10"), TransactionType.PAYMENT)
    with pytest.raises(ValidationException):
        wallet_ledger.debit(db, wallet.id, Decimal("10"), TransactionType.TOPUP)
    db.rollback()


def test_tampered_balance_is_detected(db, customer, fund):
    wallet = fund(customer, "1000")
    wallet.balance = Decimal("999999")
    db.commit()

    with pytest.raises(LedgerIntegrityError):
        with atomic(db):
            wallet_ledger.debit(db, wallet.id, Decimal("10"))

    report = wallet_ledger.verify_ledger(db, wallet.id)
    assert not report.is_consistent
    assert report.replayed_balance == Decimal("1000")
    assert report.balance == Decimal("999999")


def test_verify_ledger_points_to_first_broken_transaction(db, customer, fund):
    wallet = fund(customer, "1000")
    wallet_ledger.topup(db, customer.id, Decimal("500"))
    transactions = wallet_ledger.list_transactions(db, customer.id)
    transactions[1].balance_before = Decimal("900")
    db.commit()

    report = wallet_ledger.verify_ledger(db, wallet.id)
    assert not report.is_consistent
    assert report.first_mismatch_transaction_id == transactions[1].id


def test_withdraw_without_wallet(db, customer):
    with pytest.raises(InsufficientFundsError):
        wallet_ledger.withdraw(db, customer.id, Decimal("10"))
    assert wallet_ledger.get_balance(db, customer.id) == Decimal("0")
    assert wallet_ledger.list_transactions(db, customer.id) == []


def test_verify_unknown_wallet(db):
    with pytest.raises(WalletNotFoundError):
        wallet_ledger.verify_ledger(db, 999)


def test_ensure_funds(db, customer, fund):
    wallet = fund(customer, "1000")
    with atomic(db):
        assert wallet_ledger.ensure_funds(db, wallet.id, Decimal("1000")).id == wallet.id
    with pytest.raises(InsufficientFundsError):
        with atomic(db):
            wallet_ledger.ensure_funds(db, wallet.id, Decimal("1000.01"))
