import datetime
from sqlalchemy import Column, Integer, Boolean, DateTime, JSON
from flixstatus.db import Base

def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)

class ServiceStatusSnapshot(Base):
    """Foto puntual del estado agregado de los servicios. Solo se inserta."""
    __tablename__ = "service_status_snapshots"
    id          = Column(Integer, primary_key=True, index=True)
    healthy     = Column(Integer, nullable=False)
    total       = Column(Integer, nullable=False)
    all_healthy = Column(Boolean, nullable=False, default=False)
    services    = Column(JSON, nullable=False, default=list)
    created_at  = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
