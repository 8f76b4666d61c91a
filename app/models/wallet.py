from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Enum,
    Numeric,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal

from app.database import Base
from app.enums.transaction_type import TransactionType


class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
        {"extend_existing": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    # Solo lo modifica app.services.wallet_ledger
    balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("app.models.user.User", back_populates="wallet")
    transactions = relationship(
        "app.models.wallet.WalletTransaction",
        back_populates="wallet",
        order_by="WalletTransaction.id",
    )


class WalletTransaction(Base):
    """Movimiento inmutable del libro mayor de una billetera"""

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
        CheckConstraint(
            "balance_after >= 0", name="ck_wallet_transactions_balance_after"
        ),
        {"extend_existing": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    type = Column(Enum(TransactionType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Siempre positivo
    balance_before = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    wallet = relationship("app.models.wallet.Wallet", back_populates="transactions")
    booking = relationship("app.models.booking.Booking")
