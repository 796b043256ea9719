import asyncio, datetime
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Sequence, Tuple

import httpx
from loguru import logger
from sqlalchemy.orm import Session

from flixstatus.config import settings
from flixstatus.models import ServiceStatusSnapshot

@dataclass(frozen=True)
class ServiceConfig:
    id: str
    name: str
    path: str

SERVICES: Tuple[ServiceConfig, ...] = (
    ServiceConfig("database", "Base de datos", "/api/status/database"),
    ServiceConfig("storage", "Storage (Wasabi)", "/api/status/storage"),
    ServiceConfig("transcoder", "Transcoder", "/api/status/transcoder"),
    ServiceConfig("cloudflare", "Proxy / CDN", "/api/status/cloudflare"),
)

def _result(service: ServiceConfig, ok: bool, code: Optional[int], details: Optional[str]) -> Dict[str, Any]:
    return {"id": service.id, "name": service.name, "ok": ok, "statusCode": code, "details": details}

async def fetch_service_status(
    client: httpx.AsyncClient, service: ServiceConfig, base_url: str, timeout: Optional[float] = None
) -> Dict[str, Any]:
    url = base_url.rstrip("/") + service.path
    try:
        r = await client.get(url, timeout=timeout or settings.COLLECT_TIMEOUT, headers={"Cache-Control": "no-store"})
    except httpx.TimeoutException:
        logger.warning("uptime: {} sin respuesta (timeout)", service.id)
        return _result(service, False, None, "Timeout")
    except httpx.HTTPError as ex:
        logger.warning("uptime: {} inaccesible: {}", service.id, ex)
        return _result(service, False, None, str(ex) or "Error al consultar el servicio")

    try:
        body = r.json()
    except ValueError:
        body = None  # sin JSON: nos quedamos con el status
    if not isinstance(body, dict):
        body = {}

    if not r.is_success:
        details = body.get("error") or body.get("message") or f"HTTP {r.status_code}"
        return _result(service, False, r.status_code, details)

    ok = body.get("success") is not False
    return _result(service, ok, r.status_code, body.get("message"))

async def collect_snapshot(
    base_url: str,
    client: Optional[httpx.AsyncClient] = None,
    services: Sequence[ServiceConfig] = SERVICES,
) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Consulta todos los servicios en paralelo; un fallo nunca aborta a los demás."""
    if client is None:
        async with httpx.AsyncClient() as own:
            return await collect_snapshot(base_url, own, services)

    outcomes = await asyncio.gather(
        *[fetch_service_status(client, s, base_url) for s in services],
        return_exceptions=True,
    )

    results: List[Dict[str, Any]] = []
    for service, outcome in zip(services, outcomes):
        if isinstance(outcome, BaseException):
            logger.opt(exception=outcome).error("uptime: fallo inesperado en {}", service.id)
            results.append(_result(service, False, None, str(outcome) or "Error desconocido"))
        else:
            results.append(outcome)

    total = len(results)
    healthy = sum(1 for r in results if r["ok"])
    summary = {
        "healthy": healthy,
        "total": total,
        "allHealthy": total > 0 and healthy == total,
        "lastCheckAt": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }
    return summary, results

def record_snapshot(db: Session, summary: Dict[str, Any], services: List[Dict[str, Any]]) -> ServiceStatusSnapshot:
    snap = ServiceStatusSnapshot(
        healthy=summary["healthy"],
        total=summary["total"],
        all_healthy=summary["allHealthy"],
        services=services,
    )
    db.add(snap); db.commit(); db.refresh(snap)
    logger.info("uptime: snapshot {} registrado ({}/{} OK)", snap.id, snap.healthy, snap.total)
    return snap

def clamp_limit(raw: Optional[str]) -> int:
    """``limit`` de la query -> [1, HISTORY_MAX_LIMIT]; vacío, 0 o basura -> default."""
    default = settings.HISTORY_DEFAULT_LIMIT
    try:
        n = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        n = default
    if n == 0:
        n = default
    return min(max(n, 1), settings.HISTORY_MAX_LIMIT)

def list_snapshots(db: Session, limit: int) -> List[ServiceStatusSnapshot]:
    return (
        db.query(ServiceStatusSnapshot)
        .order_by(ServiceStatusSnapshot.created_at.desc(), ServiceStatusSnapshot.id.desc())
        .limit(limit)
        .all()
    )
