import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking:created"
BOOKING_CONFIRMED = "booking:confirmed"
BOOKING_CANCELLED = "booking:cancelled"
BOOKING_CHECKED_IN = "booking:checked_in"
BOOKING_COMPLETED = "booking:completed"
BOOKING_EXPIRED = "booking:expired"
BOOKING_UPDATED = "booking:updated"
WALLET_REFUNDED = "wallet:refunded"
WALLET_TOPPED_UP = "wallet:topped_up"

EventHandler = Callable[[str, Dict[str, Any]], None]


class EventBus:
    """
    Publica eventos de dominio para la capa de notificaciones / tiempo real.

    El motor no sabe cómo se entregan: solo llama a los handlers suscriptos.
    Los eventos se publican después del commit, así nunca se anuncia algo
    que terminó revirtiéndose.
    """

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        if handler in self._handlers.get(event_name, []):
            self._handlers[event_name].remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        handlers = list(self._handlers.get(event_name, []))
        logger.debug(f"Evento {event_name} -> {len(handlers)} handlers")
        for handler in handlers:
            try:
                handler(event_name, payload)
            except Exception as e:
                # Una falla de entrega no deshace una operación ya confirmada
                logger.error(f"Error en handler de {event_name}: {e}")


event_bus = EventBus()


def booking_payload(booking) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "booking_code": booking.booking_code,
        "court_id": booking.court_id,
        "user_id": booking.user_id,
        "status": booking.status.value if booking.status else None,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
    }
