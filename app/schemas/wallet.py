from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from app.enums.transaction_type import TransactionType


class WalletBalance(BaseModel):
    user_id: int
    balance: Decimal
    updated_at: Optional[datetime] = None


class WalletTransactionResponse(BaseModel):
    id: int
    type: TransactionType
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    booking_id: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletTransactionsResponse(BaseModel):
    balance: Decimal
    transactions: List[WalletTransactionResponse]


class WalletMovementRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    description: Optional[str] = None


class LedgerReportResponse(BaseModel):
    wallet_id: int
    balance: Decimal
    replayed_balance: Decimal
    transaction_count: int
    is_consistent: bool
    first_mismatch_transaction_id: Optional[int] = None
