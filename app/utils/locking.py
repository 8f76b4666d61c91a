"""
Bloqueos por recurso para las secuencias que deben ser atómicas.

En PostgreSQL se usa SELECT ... FOR UPDATE sobre la fila de la cancha (serializa
verificar-disponibilidad + insertar) y sobre la fila de la billetera (serializa
lectura de saldo + escritura). SQLite no tiene bloqueo de filas, así que además
se toma un lock del proceso por recurso que se libera cuando termina la
transacción de la sesión.

Orden de adquisición: canchas (id ascendente) antes que billeteras, y entre
billeteras id ascendente. Quien necesita varias billeteras las toma juntas con
`lock_user_wallets` antes de mover saldo en cualquiera de ellas.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.court import Court
from app.models.wallet import Wallet

logger = logging.getLogger(__name__)

_HELD_LOCKS_KEY = "held_resource_locks"

_registry_lock = threading.Lock()
_resource_locks: Dict[str, threading.Lock] = {}


def _process_lock(key: str) -> threading.Lock:
    with _registry_lock:
        lock = _resource_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _resource_locks[key] = lock
        return lock


def _needs_process_lock(db: Session) -> bool:
    return db.get_bind().dialect.name == "sqlite"


def _acquire(db: Session, key: str) -> None:
    if not _needs_process_lock(db):
        return
    held: List[str] = db.info.setdefault(_HELD_LOCKS_KEY, [])
    if key in held:
        return  # La misma transacción ya lo tiene
    _process_lock(key).acquire()
    held.append(key)


@event.listens_for(Session, "after_transaction_end")
def _release_locks(session: Session, transaction) -> None:
    # Solo al cerrar la transacción raíz, no los savepoints
    if transaction.parent is not None:
        return
    held = session.info.pop(_HELD_LOCKS_KEY, None)
    if not held:
        return
    for key in reversed(held):
        _process_lock(key).release()


def lock_court(db: Session, court_id: int) -> Optional[Court]:
    """
    Bloquea la cancha hasta el fin de la transacción y la devuelve recargada.

    Returns:
        Court | None: None si la cancha no existe
    """
    _acquire(db, f"court:{court_id}")
    return (
        db.query(Court)
        .filter(Court.id == court_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def lock_courts(db: Session, court_ids: Iterable[int]) -> Dict[int, Optional[Court]]:
    """Bloquea varias canchas en orden ascendente de id"""
    return {court_id: lock_court(db, court_id) for court_id in sorted(set(court_ids))}


def lock_wallet(db: Session, wallet_id: int) -> Optional[Wallet]:
    """Bloquea la billetera y devuelve su saldo recién leído de la base"""
    _acquire(db, f"wallet:{wallet_id}")
    return (
        db.query(Wallet)
        .filter(Wallet.id == wallet_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def lock_user_wallets(db: Session, user_ids: Iterable[int]) -> List[Wallet]:
    """Bloquea las billeteras existentes de esos usuarios en orden ascendente de id"""
    ids = {user_id for user_id in user_ids if user_id is not None}
    if not ids:
        return []
    wallet_ids = [
        wallet_id
        for (wallet_id,) in db.query(Wallet.id)
        .filter(Wallet.user_id.in_(ids))
        .order_by(Wallet.id)
        .all()
    ]
    return [lock_wallet(db, wallet_id) for wallet_id in wallet_ids]


def lock_booking(db: Session, booking_id: int) -> Optional[Booking]:
    """
    Bloquea la cancha de la reserva y devuelve la reserva recargada.

    Toda modificación de estado de una reserva pasa por el lock de su cancha,
    así no compite con una verificación de disponibilidad en curso.
    """
    court_id = db.query(Booking.court_id).filter(Booking.id == booking_id).scalar()
    if court_id is None:
        return None
    lock_court(db, court_id)
    return (
        db.query(Booking)
        .filter(Booking.id == booking_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
