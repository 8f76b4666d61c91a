from enum import Enum


class TransactionType(str, Enum):
    TOPUP = "TOPUP"
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    WITHDRAWAL = "WITHDRAWAL"


CREDIT_TYPES = frozenset({TransactionType.TOPUP, TransactionType.REFUND})
DEBIT_TYPES = frozenset({TransactionType.PAYMENT, TransactionType.WITHDRAWAL})
