import asyncio, secrets
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session

from flixstatus.config import settings
from flixstatus.deps import db_session, get_http_client
from flixstatus.ratelimit import rate_limit
from flixstatus.schemas import HistoryOut, SnapshotOut
from flixstatus.services import uptime

router = APIRouter(prefix="/api/admin/uptime")

def _authorized(header_secret: Optional[str], query_secret: Optional[str]) -> bool:
    expected = settings.UPTIME_CRON_SECRET
    if not expected:
        return True
    given = header_secret if header_secret is not None else query_secret
    if given is None:
        return False
    return secrets.compare_digest(given.encode(), expected.encode())

def _with_limit_headers(body: dict, status_code: int, response: Response) -> JSONResponse:
    # rate_limit() deja los X-RateLimit-* en la respuesta inyectada; un JSONResponse nuevo no los hereda
    out = JSONResponse(body, status_code=status_code)
    for k, v in response.headers.items():
        if k.lower().startswith("x-ratelimit-"):
            out.headers[k] = v
    return out

@router.get("")
async def current(request: Request, client: httpx.AsyncClient = Depends(get_http_client)):
    try:
        summary, services = await uptime.collect_snapshot(str(request.base_url), client)
    except Exception:
        logger.exception("uptime: error al consultar servicios")
        return JSONResponse({"error": "Error al obtener datos de uptime"}, status_code=500)
    return {"summary": summary, "services": services}

@router.get("/record", dependencies=[Depends(rate_limit("record"))])
async def record(
    request: Request,
    response: Response,
    secret: Optional[str] = None,
    x_cron_secret: Optional[str] = Header(default=None),
    db: Session = Depends(db_session),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    if not _authorized(x_cron_secret, secret):
        return _with_limit_headers({"error": "Unauthorized"}, 401, response)

    try:
        summary, services = await uptime.collect_snapshot(str(request.base_url), client)
        # commit síncrono fuera del event loop
        snap = await asyncio.to_thread(uptime.record_snapshot, db, summary, services)
    except Exception:
        logger.exception("uptime: error al registrar snapshot")
        await asyncio.to_thread(db.rollback)
        return _with_limit_headers({"error": "Error al registrar snapshot de uptime"}, 500, response)

    return {"success": True, "snapshotId": snap.id, "summary": summary, "services": services}

@router.get("/history")
def history(limit: Optional[str] = None, db: Session = Depends(db_session)):
    try:
        rows = uptime.list_snapshots(db, uptime.clamp_limit(limit))
    except Exception:
        logger.exception("uptime: error al leer historial")
        return JSONResponse({"error": "Error al obtener historial de uptime"}, status_code=500)
    out = HistoryOut(data=[SnapshotOut.model_validate(r) for r in rows], count=len(rows))
    return out.model_dump(by_alias=True, mode="json")
