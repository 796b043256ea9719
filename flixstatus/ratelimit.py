"""Rate limiting de ventana fija, en memoria del proceso.

Cada ruta protegida tiene su propio ``RateLimitStore``; la app los guarda en
``app.state.rate_limits`` y las rutas los piden por nombre con ``rate_limit()``.

Los contadores son locales al proceso: con varios workers o instancias cada
uno cuenta por separado, así que el límite efectivo es ``max * workers``.
"""
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import HTTPException, Request, Response, status


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float  # epoch ms, fin de la ventana


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_time: float


def _now_ms() -> float:
    return time.time() * 1000


class RateLimitStore:
    """Contadores por identificador con ventanas fijas de ``window_ms``.

    FastAPI ejecuta las dependencias síncronas en un threadpool, por eso el
    incremento y la comparación van bajo un lock.

    Las entradas vencidas no se borran solas: se reemplazan en la siguiente
    petición del mismo cliente. ``sweep()`` las elimina explícitamente y, si
    ``sweep_threshold`` está definido, ``check()`` barre cuando el mapa lo supera.
    """

    def __init__(
        self,
        window_ms: int,
        max: int,
        clock: Optional[Callable[[], float]] = None,
        sweep_threshold: Optional[int] = None,
    ):
        if window_ms <= 0:
            raise ValueError("window_ms debe ser > 0")
        if max < 1:
            raise ValueError("max debe ser >= 1")
        self.window_ms = window_ms
        self.max = max
        self._clock = clock or _now_ms
        self._sweep_threshold = sweep_threshold or None
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def check(self, identifier: str) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)

            if entry is None or now > entry.reset_time:
                if self._sweep_threshold and len(self._entries) >= self._sweep_threshold:
                    self._sweep_locked(now)
                entry = RateLimitEntry(count=1, reset_time=now + self.window_ms)
                self._entries[identifier] = entry
                return RateLimitResult(True, self.max, self.max - 1, entry.reset_time)

            entry.count += 1
            if entry.count > self.max:
                return RateLimitResult(False, self.max, 0, entry.reset_time)
            return RateLimitResult(True, self.max, self.max - entry.count, entry.reset_time)

    def sweep(self, now: Optional[float] = None) -> int:
        """Elimina las entradas cuya ventana ya cerró. Devuelve cuántas borró."""
        with self._lock:
            return self._sweep_locked(self._clock() if now is None else now)

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if now > e.reset_time]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return "unknown"


def rate_limit(name: str):
    """Dependencia FastAPI que aplica el store ``name`` de ``app.state.rate_limits``."""

    def dependency(request: Request, response: Response) -> RateLimitResult:
        store: RateLimitStore = request.app.state.rate_limits[name]
        result = store.check(client_identifier(request))
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(int(result.reset_time // 1000)),
        }
        if not result.success:
            retry_after = max(0, math.ceil((result.reset_time - store.now()) / 1000))
            headers["Retry-After"] = str(retry_after)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers=headers,
            )
        response.headers.update(headers)
        return result

    return dependency
