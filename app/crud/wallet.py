from sqlalchemy.orm import Session
from typing import List, Optional

from app.models.wallet import Wallet, WalletTransaction


def get_wallet(db: Session, wallet_id: int) -> Optional[Wallet]:
    return db.query(Wallet).filter(Wallet.id == wallet_id).first()


def get_wallet_by_user(db: Session, user_id: int) -> Optional[Wallet]:
    return db.query(Wallet).filter(Wallet.user_id == user_id).first()


def get_transactions(db: Session, wallet_id: int) -> List[WalletTransaction]:
    """Movimientos en orden de creación (el orden del libro mayor)"""
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.wallet_id == wallet_id)
        .order_by(WalletTransaction.id)
        .all()
    )


def get_last_transaction(db: Session, wallet_id: int) -> Optional[WalletTransaction]:
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.wallet_id == wallet_id)
        .order_by(WalletTransaction.id.desc())
        .first()
    )
