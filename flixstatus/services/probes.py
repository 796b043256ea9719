"""Probes de las dependencias que alimentan /api/status/*.

Cada probe devuelve un dict con ``success: True`` y datos extra, o lanza
``ProbeError`` (``ProbeTimeout`` si se venció la espera).
"""
import asyncio
from typing import Any, Dict

import boto3
import httpx
from sqlalchemy import text
from sqlalchemy.orm import Session

from flixstatus.config import settings
from flixstatus.exceptions import ProbeError, ProbeTimeout


async def _bounded(coro, seconds: float):
    try:
        return await asyncio.wait_for(coro, timeout=seconds)
    except asyncio.TimeoutError:
        raise ProbeTimeout(seconds) from None


async def ping_database(db: Session, timeout: float) -> None:
    """``SELECT 1`` acotado; sin colgar la petición si la DB no responde."""
    try:
        await _bounded(asyncio.to_thread(db.execute, text("SELECT 1")), timeout)
    except ProbeError:
        raise
    except Exception as ex:
        raise ProbeError(str(ex) or "Error al conectar") from ex


async def check_database(db: Session) -> Dict[str, Any]:
    await ping_database(db, settings.HEALTH_DB_TIMEOUT)
    return {"success": True, "message": "Conectado y funcionando"}


def storage_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.WASABI_ENDPOINT or None,
        region_name=settings.WASABI_REGION,
        aws_access_key_id=settings.WASABI_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.WASABI_SECRET_ACCESS_KEY or None,
    )


async def check_storage() -> Dict[str, Any]:
    bucket = settings.WASABI_BUCKET_NAME
    if not bucket:
        raise ProbeError("WASABI_BUCKET_NAME no configurado")

    try:
        client = storage_client()
        resp = await _bounded(
            asyncio.to_thread(client.list_objects_v2, Bucket=bucket, MaxKeys=1),
            settings.STORAGE_TIMEOUT,
        )
    except ProbeError:
        raise
    except Exception as ex:
        raise ProbeError(str(ex) or "Error desconocido al acceder a Wasabi") from ex

    return {
        "success": True,
        "message": "Storage Wasabi online",
        "bucket": bucket,
        "objectCount": resp.get("KeyCount", 0),
    }


async def check_transcoder(client: httpx.AsyncClient) -> Dict[str, Any]:
    base = settings.TRANSCODER_BASE_URL.rstrip("/")
    try:
        r = await client.get(f"{base}/health", timeout=settings.TRANSCODER_TIMEOUT)
    except httpx.TimeoutException:
        raise ProbeTimeout(settings.TRANSCODER_TIMEOUT) from None
    except httpx.HTTPError as ex:
        raise ProbeError(str(ex) or "Offline") from ex

    if not r.is_success:
        raise ProbeError(f"HTTP {r.status_code}")
    try:
        data = r.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        data = {}
    return {"success": True, "status": data.get("status") or "ok", "url": base}


async def check_cdn(client: httpx.AsyncClient) -> Dict[str, Any]:
    url = settings.CDN_URL.rstrip("/") + "/" + settings.CDN_PROBE_PATH.lstrip("/")
    try:
        r = await client.head(url, timeout=settings.CDN_TIMEOUT, headers={"Cache-Control": "no-cache"})
    except httpx.TimeoutException:
        raise ProbeTimeout(settings.CDN_TIMEOUT) from None
    except httpx.HTTPError as ex:
        raise ProbeError(str(ex) or "Offline") from ex

    # 403 = objeto privado, 404 = no existe; en ambos casos el proxy responde
    if r.is_success:
        msg = "Proxy funcionando (archivo accesible)"
    elif r.status_code == 403:
        msg = "Proxy funcionando (archivo privado)"
    elif r.status_code == 404:
        msg = "Proxy funcionando (archivo de prueba no encontrado)"
    else:
        raise ProbeError(f"HTTP {r.status_code}")
    return {"success": True, "message": msg, "url": settings.CDN_URL, "status": r.status_code}
