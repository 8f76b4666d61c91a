from sqlalchemy.orm import Session
from datetime import time
from decimal import Decimal
import logging
import os

from app.enums.user_role import UserRole
from app.models.court import Court
from app.models.pricing_rule import PricingRule
from app.models.user import User
from app.services.auth import get_password_hash

logger = logging.getLogger(__name__)

DEFAULT_COURTS = ["Cancha 1", "Cancha 2", "Cancha 3"]

# (nombre, día, inicio, fin, precio/hora, prioridad); día None = todos
DEFAULT_PRICING_RULES = [
    ("Diurno", None, time(6, 0), time(17, 0), Decimal("50000"), 0),
    ("Nocturno", None, time(17, 0), time(21, 0), Decimal("80000"), 1),
    ("Fin de semana diurno (sábado)", 6, time(6, 0), time(17, 0), Decimal("60000"), 2),
    ("Fin de semana diurno (domingo)", 0, time(6, 0), time(17, 0), Decimal("60000"), 2),
    ("Fin de semana nocturno (sábado)", 6, time(17, 0), time(21, 0), Decimal("90000"), 3),
    ("Fin de semana nocturno (domingo)", 0, time(17, 0), time(21, 0), Decimal("90000"), 3),
]


def create_initial_admins(db: Session):
    """
    Crea el usuario admin inicial si la tabla está vacía.
    """
    if db.query(User).count() > 0:
        logger.info("Ya existen usuarios, no se crea el admin inicial.")
        return

    email = os.getenv("INITIAL_ADMIN_EMAIL", "admin@courtside.local")
    db_user = User(
        name="admin",
        email=email,
        phone=None,
        hashed_password=get_password_hash(
            os.getenv("INITIAL_ADMIN_PASSWORD", "change-me")
        ),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    logger.info(f"Admin creado: {email}")


def create_default_courts(db: Session):
    if db.query(Court).count() > 0:
        return

    for name in DEFAULT_COURTS:
        db.add(Court(name=name, price_per_hour=Decimal("50000"), is_active=True))
        logger.info(f"Cancha creada: {name}")
    db.commit()


def create_default_pricing_rules(db: Session):
    """Tarifas globales por defecto; las de fin de semana tienen más prioridad"""
    if db.query(PricingRule).count() > 0:
        return

    for name, day, start, end, price, priority in DEFAULT_PRICING_RULES:
        db.add(
            PricingRule(
                name=name,
                court_id=None,
                day_of_week=day,
                start_time=start,
                end_time=end,
                price_per_hour=price,
                priority=priority,
                is_active=True,
            )
        )
    db.commit()
    logger.info(f"{len(DEFAULT_PRICING_RULES)} reglas de precio creadas")


def init_db(db: Session):
    create_initial_admins(db)
    create_default_courts(db)
    create_default_pricing_rules(db)
