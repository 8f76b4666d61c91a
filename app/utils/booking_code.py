import secrets
import string
from datetime import datetime
from sqlalchemy.orm import Session

from app.models.booking import Booking

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_ATTEMPTS = 10


def generate_booking_code(db: Session, now: datetime) -> str:
    """
    Genera el código externo de una reserva con formato BK<aammdd>-<XXXX>.

    El sufijo es aleatorio; se reintenta si ya existe en la base.
    """
    prefix = f"BK{now:%y%m%d}"
    for _ in range(MAX_ATTEMPTS):
        suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(4))
        code = f"{prefix}-{suffix}"
        exists = db.query(Booking.id).filter(Booking.booking_code == code).first()
        if not exists:
            return code
    # Con 36^4 combinaciones por día esto no debería ocurrir
    return f"{prefix}-{secrets.token_hex(4).upper()}"
