from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import DATABASE_URL

SQLALCHEMY_DATABASE_URL = DATABASE_URL

engine = create_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Unidad atómica: confirma al salir sin errores y revierte ante cualquier excepción.

    Todas las operaciones que tocan reservas y billetera a la vez se ejecutan
    dentro de un único bloque atomic, nunca como commits sucesivos.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
