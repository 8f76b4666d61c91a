"""
Excepciones de dominio del motor de reservas.

Cada excepción conoce su código HTTP; los routers no traducen errores a mano,
los handlers registrados en app.main lo hacen a partir de esta jerarquía.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base de todos los errores de dominio."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


# ==================== VALIDACIÓN ====================


class ValidationException(DomainException):
    """Datos inválidos; se rechaza antes de cualquier efecto."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIntervalError(ValidationException):
    pass


class PermissionDeniedError(DomainException):
    status_code = status.HTTP_403_FORBIDDEN


# ==================== NO ENCONTRADO ====================


class NotFoundException(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class CourtNotFoundError(NotFoundException):
    pass


class BookingNotFoundError(NotFoundException):
    pass


class BookingGroupNotFoundError(NotFoundException):
    pass


class WalletNotFoundError(NotFoundException):
    pass


# ==================== CONFLICTOS ====================


class ConflictException(DomainException):
    """El estado actual no permite la operación; no se crea estado parcial."""

    status_code = status.HTTP_409_CONFLICT


class SlotUnavailableError(ConflictException):
    """El intervalo pedido se solapa con reservas o bloqueos vigentes."""


class CheckInWindowError(ConflictException):
    pass


class InvalidTransitionError(ConflictException):
    pass


class BookingExpiredError(ConflictException):
    pass


# ==================== DINERO ====================


class InsufficientFundsError(DomainException):
    """Saldo insuficiente. La reserva conserva su estado previo y se puede reintentar."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


# ==================== CONFIGURACIÓN / CONSISTENCIA ====================


class ConfigurationError(DomainException):
    """Falta configuración administrativa; no es un error del usuario."""


class NoPricingRuleError(ConfigurationError):
    pass


class ConsistencyError(DomainException):
    """Violación de un invariante; la escritura se aborta completa."""


class LedgerIntegrityError(ConsistencyError):
    pass
