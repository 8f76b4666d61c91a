"""
Configuración compartida para tests pytest
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime, time
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db

# Importar todos los modelos para que SQLAlchemy pueda resolver las relaciones
from app import models  # noqa: F401
from app.enums.user_role import UserRole
from app.models.court import Court
from app.models.pricing_rule import PricingRule
from app.models.user import User
from app.services import wallet_ledger
from app.services.events import event_bus


# Base de datos en memoria para tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Lunes 7 de enero de 2030, 08:00. Todas las pruebas usan un "ahora" explícito.
NOW = datetime(2030, 1, 7, 8, 0)


@pytest.fixture
def db():
    """Crear base de datos de test y limpiarla después"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def override_get_db(db):
    """Override de get_db para tests"""
    def _get_db():
        try:
            yield db
        finally:
            pass
    return _get_db


@pytest.fixture(autouse=True)
def clean_event_bus():
    event_bus.clear()
    yield
    event_bus.clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def recorded_events():
    """Registra todos los eventos publicados durante el test"""
    events = []
    for name in (
        "booking:created",
        "booking:confirmed",
        "booking:cancelled",
        "booking:checked_in",
        "booking:completed",
        "booking:expired",
        "booking:updated",
        "wallet:refunded",
        "wallet:topped_up",
    ):
        event_bus.subscribe(name, lambda event, payload: events.append((event, payload)))
    return events


def _make_user(db, user_id, name, role):
    user = User(
        id=user_id,
        name=name,
        email=f"{name}@example.com",
        hashed_password="hashed",
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    """Cliente de prueba"""
    return _make_user(db, 1, "customer", UserRole.CUSTOMER)


@pytest.fixture
def other_customer(db):
    return _make_user(db, 2, "other", UserRole.CUSTOMER)


@pytest.fixture
def staff(db):
    return _make_user(db, 3, "staff", UserRole.STAFF)


@pytest.fixture
def admin(db):
    return _make_user(db, 4, "admin", UserRole.ADMIN)


@pytest.fixture
def court(db):
    court = Court(id=1, name="Cancha 1", price_per_hour=Decimal("1"), is_active=True)
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def second_court(db):
    court = Court(id=2, name="Cancha 2", price_per_hour=Decimal("1"), is_active=True)
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def pricing_rules(db):
    """
    Tarifa global: 50.000/h hasta las 17:00 y 80.000/h desde las 17:00 hasta
    medianoche, así cualquier intervalo tiene precio.
    """
    rules = [
        PricingRule(
            id=1,
            name="Diurno",
            start_time=time(0, 0),
            end_time=time(17, 0),
            price_per_hour=Decimal("50000"),
            priority=0,
            is_active=True,
        ),
        PricingRule(
            id=2,
            name="Nocturno",
            start_time=time(17, 0),
            end_time=time(0, 0),
            price_per_hour=Decimal("80000"),
            priority=1,
            is_active=True,
        ),
    ]
    db.add_all(rules)
    db.commit()
    return rules


@pytest.fixture
def fund(db):
    """Carga saldo en la billetera de un usuario"""
    def _fund(user, amount):
        wallet_ledger.topup(db, user.id, Decimal(amount))
        return wallet_ledger.get_or_create_wallet(db, user.id)
    return _fund
