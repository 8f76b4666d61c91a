from enum import Enum


class PaymentMethod(str, Enum):
    WALLET = "WALLET"
    GATEWAY = "GATEWAY"
    CASH = "CASH"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
    FAILED = "FAILED"
