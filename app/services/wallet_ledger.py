"""
Libro mayor de billeteras.

Es el único lugar que modifica Wallet.balance. Cada movimiento bloquea la
billetera, verifica que el último movimiento coincida con el saldo, escribe el
saldo nuevo y el movimiento en la misma transacción. credit y debit solo hacen
flush: el commit lo decide la operación que los contiene.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.crud import wallet as wallet_crud
from app.database import atomic
from app.enums.transaction_type import CREDIT_TYPES, DEBIT_TYPES, TransactionType
from app.exceptions import (
    InsufficientFundsError,
    LedgerIntegrityError,
    ValidationException,
    WalletNotFoundError,
)
from app.models.wallet import Wallet, WalletTransaction
from app.services.events import WALLET_TOPPED_UP, event_bus
from app.utils.locking import lock_wallet

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class LedgerReport:
    wallet_id: int
    balance: Decimal
    replayed_balance: Decimal
    transaction_count: int
    is_consistent: bool
    first_mismatch_transaction_id: Optional[int] = None


def signed_amount(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    if transaction_type in CREDIT_TYPES:
        return Decimal(amount)
    return -Decimal(amount)


def get_or_create_wallet(db: Session, user_id: int) -> Wallet:
    wallet = wallet_crud.get_wallet_by_user(db, user_id)
    if wallet is None:
        wallet = Wallet(user_id=user_id, balance=ZERO)
        db.add(wallet)
        db.flush()
        logger.info(f"Billetera {wallet.id} creada para el usuario {user_id}")
    return wallet


def _lock_and_check(db: Session, wallet_id: int) -> Wallet:
    wallet = lock_wallet(db, wallet_id)
    if wallet is None:
        raise WalletNotFoundError(
            f"Wallet {wallet_id} not found", details={"wallet_id": wallet_id}
        )

    last = wallet_crud.get_last_transaction(db, wallet_id)
    expected = Decimal(last.balance_after) if last else ZERO
    if Decimal(wallet.balance) != expected:
        logger.error(
            f"Billetera {wallet_id}: saldo {wallet.balance} no coincide con el "
            f"último movimiento ({expected})"
        )
        raise LedgerIntegrityError(
            "Wallet balance does not match its ledger",
            details={
                "wallet_id": wallet_id,
                "balance": str(wallet.balance),
                "ledger_balance": str(expected),
            },
        )
    return wallet


def ensure_funds(db: Session, wallet_id: int, amount: Decimal) -> Wallet:
    """Bloquea la billetera y falla si el saldo no alcanza para `amount`"""
    wallet = _lock_and_check(db, wallet_id)
    if Decimal(wallet.balance) < Decimal(amount):
        raise InsufficientFundsError(
            "Insufficient wallet balance",
            details={
                "wallet_id": wallet_id,
                "balance": str(wallet.balance),
                "required": str(amount),
            },
        )
    return wallet


def _record(
    db: Session,
    wallet_id: int,
    amount: Decimal,
    transaction_type: TransactionType,
    booking_id: Optional[int],
    description: Optional[str],
) -> WalletTransaction:
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationException(
            "Amount must be positive", details={"amount": str(amount)}
        )

    wallet = _lock_and_check(db, wallet_id)
    balance_before = Decimal(wallet.balance)
    balance_after = balance_before + signed_amount(transaction_type, amount)

    if balance_after < 0:
        raise InsufficientFundsError(
            "Insufficient wallet balance",
            details={
                "wallet_id": wallet_id,
                "balance": str(balance_before),
                "required": str(amount),
            },
        )

    transaction = WalletTransaction(
        wallet_id=wallet_id,
        type=transaction_type,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        booking_id=booking_id,
        description=description,
    )
    wallet.balance = balance_after
    db.add(transaction)
    db.flush()

    logger.info(
        f"Billetera {wallet_id}: {transaction_type.value} {amount} "
        f"({balance_before} -> {balance_after})"
    )
    return transaction


def credit(
    db: Session,
    wallet_id: int,
    amount: Decimal,
    transaction_type: TransactionType = TransactionType.REFUND,
    booking_id: Optional[int] = None,
    description: Optional[str] = None,
) -> WalletTransaction:
    if transaction_type not in CREDIT_TYPES:
        raise ValidationException(f"{transaction_type.value} is not a credit")
    return _record(db, wallet_id, amount, transaction_type, booking_id, description)


def debit(
    db: Session,
    wallet_id: int,
    amount: Decimal,
    transaction_type: TransactionType = TransactionType.PAYMENT,
    booking_id: Optional[int] = None,
    description: Optional[str] = None,
) -> WalletTransaction:
    if transaction_type not in DEBIT_TYPES:
        raise ValidationException(f"{transaction_type.value} is not a debit")
    return _record(db, wallet_id, amount, transaction_type, booking_id, description)


def topup(
    db: Session, user_id: int, amount: Decimal, description: Optional[str] = None
) -> WalletTransaction:
    """Carga saldo en la billetera del usuario, creándola si no existe"""
    with atomic(db):
        wallet = get_or_create_wallet(db, user_id)
        transaction = credit(
            db,
            wallet.id,
            amount,
            TransactionType.TOPUP,
            description=description or "Carga de saldo",
        )

    event_bus.publish(
        WALLET_TOPPED_UP,
        {
            "user_id": user_id,
            "wallet_id": transaction.wallet_id,
            "amount": str(transaction.amount),
            "balance": str(transaction.balance_after),
        },
    )
    return transaction


def withdraw(
    db: Session, user_id: int, amount: Decimal, description: Optional[str] = None
) -> WalletTransaction:
    with atomic(db):
        wallet = wallet_crud.get_wallet_by_user(db, user_id)
        if wallet is None:
            raise InsufficientFundsError(
                "User has no wallet balance", details={"user_id": user_id}
            )
        transaction = debit(
            db,
            wallet.id,
            amount,
            TransactionType.WITHDRAWAL,
            description=description or "Retiro de saldo",
        )
    return transaction


def get_balance(db: Session, user_id: int) -> Decimal:
    wallet = wallet_crud.get_wallet_by_user(db, user_id)
    return Decimal(wallet.balance) if wallet else ZERO


def list_transactions(db: Session, user_id: int) -> List[WalletTransaction]:
    wallet = wallet_crud.get_wallet_by_user(db, user_id)
    if wallet is None:
        return []
    return wallet_crud.get_transactions(db, wallet.id)


def verify_ledger(db: Session, wallet_id: int) -> LedgerReport:
    """
    Reproduce todos los movimientos desde saldo 0 y compara con el saldo actual.

    También verifica que cada movimiento encadene con el anterior
    (balance_before igual al balance_after previo).
    """
    wallet = wallet_crud.get_wallet(db, wallet_id)
    if wallet is None:
        raise WalletNotFoundError(
            f"Wallet {wallet_id} not found", details={"wallet_id": wallet_id}
        )

    transactions = wallet_crud.get_transactions(db, wallet_id)
    running = ZERO
    first_mismatch = None
    for transaction in transactions:
        expected_after = running + signed_amount(transaction.type, transaction.amount)
        if first_mismatch is None and (
            Decimal(transaction.balance_before) != running
            or Decimal(transaction.balance_after) != expected_after
        ):
            first_mismatch = transaction.id
        running = expected_after

    balance = Decimal(wallet.balance)
    consistent = first_mismatch is None and running == balance
    if not consistent:
        logger.error(
            f"Libro mayor inconsistente en billetera {wallet_id}: "
            f"saldo {balance}, reproducido {running}"
        )

    return LedgerReport(
        wallet_id=wallet_id,
        balance=balance,
        replayed_balance=running,
        transaction_count=len(transactions),
        is_consistent=consistent,
        first_mismatch_transaction_id=first_mismatch,
    )
