"""
Engine y sesiones de SQLAlchemy.

El motor de sincronizacion es sincrono (una unidad de trabajo por hilo):
engine sync con el driver psycopg. Los repositorios abren una sesion por
operacion via SessionLocal.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings


Base = declarative_base()


def _create_engine_args(database_url: str) -> dict:
    """
    Argumentos del engine segun el backend.
    El pool solo aplica a PostgreSQL.
    """
    args = {"echo": settings.DEBUG, "future": True}
    if database_url.startswith("postgresql"):
        args.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
        })
    return args


engine = create_engine(
    settings.effective_database_url,
    **_create_engine_args(settings.effective_database_url),
)

SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autoflush=False,
)


def init_db() -> None:
    """Crea las tablas content_* si no existen (sin migraciones)."""
    from app.infrastructure.database import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def close_db() -> None:
    engine.dispose()
