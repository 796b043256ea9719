from typing import Awaitable, Dict, Any
import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session

from flixstatus.deps import db_session, get_http_client
from flixstatus.exceptions import ProbeError
from flixstatus.services import probes

router = APIRouter(prefix="/api/status")

async def _respond(name: str, probe: Awaitable[Dict[str, Any]]):
    try:
        return await probe
    except ProbeError as ex:
        logger.warning("status/{}: {}", name, ex)
        return JSONResponse({"success": False, "error": str(ex)}, status_code=500)

@router.get("/database")
async def database(db: Session = Depends(db_session)):
    return await _respond("database", probes.check_database(db))

@router.get("/storage")
async def storage():
    return await _respond("storage", probes.check_storage())

@router.get("/transcoder")
async def transcoder(client: httpx.AsyncClient = Depends(get_http_client)):
    return await _respond("transcoder", probes.check_transcoder(client))

@router.get("/cloudflare")
async def cloudflare(client: httpx.AsyncClient = Depends(get_http_client)):
    return await _respond("cloudflare", probes.check_cdn(client))
