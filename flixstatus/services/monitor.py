"""Monitor cliente de disponibilidad.

Sondea ``HEAD /api/health`` al arrancar y luego cada ``interval`` segundos.
Solo notifica cuando el estado observado cambia (ONLINE -> OFFLINE o al revés);
dos sondeos iguales seguidos no generan aviso.
"""
import datetime
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from loguru import logger

from flixstatus.config import settings
from flixstatus.services.scheduling import PeriodicTask

OFFLINE = "offline"
ONLINE = "online"

@dataclass(frozen=True)
class Notification:
    kind: str          # OFFLINE | ONLINE
    message: str
    duration: float    # segundos que el aviso debe quedar visible

def log_notification(n: Notification) -> None:
    if n.kind == OFFLINE:
        logger.warning("monitor: {}", n.message)
    else:
        logger.success("monitor: {}", n.message)

def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)

class ServiceMonitor:
    def __init__(
        self,
        base_url: str,
        *,
        interval: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        notify: Optional[Callable[[Notification], None]] = None,
        path: str = "/api/health",
        timeout: float = 10.0,
    ):
        self.url = base_url.rstrip("/") + path
        self.interval = interval or settings.MONITOR_INTERVAL
        self.timeout = timeout
        self.notify = notify or log_notification
        self._client = client
        self._owns_client = client is None
        self._task: Optional[PeriodicTask] = None
        self._closed = False

        # optimista hasta el primer sondeo
        self.is_online = True
        self.last_check = _now()
        self._previous = True

    async def check(self) -> bool:
        """Un sondeo. Devuelve el estado observado."""
        if self._closed:
            return self.is_online
        if self._client is None:
            self._client = httpx.AsyncClient()

        error = False
        try:
            r = await self._client.head(self.url, timeout=self.timeout, headers={"Cache-Control": "no-store"})
            current = r.is_success
        except Exception as ex:
            # cualquier fallo del sondeo cuenta como offline; CancelledError sigue propagando
            logger.debug("monitor: HEAD {} falló: {!r}", self.url, ex)
            current, error = False, True

        if self._closed:
            # stop() durante el await: no tocar estado ni notificar
            return current

        self.is_online = current
        self.last_check = _now()
        if self._previous and not current:
            msg = "Error al conectar con el servicio" if error else "Servicio offline detectado"
            self.notify(Notification(OFFLINE, msg, 10.0))
        elif not self._previous and current:
            self.notify(Notification(ONLINE, "El servicio volvió a la normalidad", 5.0))
        self._previous = current
        return current

    def start(self) -> PeriodicTask:
        if self._task is None:
            self._task = PeriodicTask(self.check, self.interval, name="service-monitor").start()
        return self._task

    async def stop(self) -> None:
        self._closed = True
        if self._task is not None:
            await self._task.stop()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ServiceMonitor":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
