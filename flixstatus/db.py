"""Engine y sesiones SQLAlchemy para los snapshots de uptime.

En producción apunta a PostgreSQL; por defecto usa un SQLite local para que
el servicio arranque sin driver extra.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from flixstatus.config import settings

def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # los handlers usan la sesión desde el threadpool (asyncio.to_thread)
        return {"connect_args": {"check_same_thread": False}}
    # conexiones largas del pool se cortan en el proxy de la DB
    return {"pool_pre_ping": True, "pool_recycle": settings.DB_POOL_RECYCLE}

engine = create_engine(settings.DATABASE_URL, future=True, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()

def init_db(bind: Engine | None = None) -> None:
    """Crea las tablas que falten. Nunca altera ni borra las existentes."""
    from flixstatus import models  # noqa: F401  registra los modelos en Base

    Base.metadata.create_all(bind=bind or engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
