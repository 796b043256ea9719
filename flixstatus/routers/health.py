import datetime, time
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from flixstatus.config import settings
from flixstatus.deps import db_session
from flixstatus.exceptions import ProbeError
from flixstatus.services import probes

router = APIRouter(prefix="/api")

def _ts() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

@router.get("/health")
async def health(db: Session = Depends(db_session)):
    started = time.monotonic()
    try:
        await probes.ping_database(db, settings.HEALTH_DB_TIMEOUT)
    except ProbeError as ex:
        return JSONResponse(
            {
                "status": "error",
                "timestamp": _ts(),
                "database": "disconnected",
                "error": str(ex) or "Unknown error",
                "duration": int((time.monotonic() - started) * 1000),
            },
            status_code=503,
        )
    return {
        "status": "ok",
        "timestamp": _ts(),
        "database": "connected",
        "duration": int((time.monotonic() - started) * 1000),
    }

# el monitor cliente lo llama a menudo: no toca la DB
@router.head("/health")
def health_head():
    return Response(status_code=200)
