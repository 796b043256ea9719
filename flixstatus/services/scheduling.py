import asyncio
import contextlib
from typing import Awaitable, Callable, Optional

from loguru import logger


class PeriodicTask:
    """Ejecuta ``func`` cada ``interval`` segundos en una tarea asyncio.

    Los ticks son secuenciales: el siguiente sleep empieza cuando termina el
    anterior, no hay dos ejecuciones solapadas. Una excepción en ``func`` se
    registra y el bucle sigue. Cuando ``stop()`` retorna, ``func`` no vuelve a
    ejecutarse.
    """

    def __init__(
        self,
        func: Callable[[], Awaitable[object]],
        interval: float,
        *,
        run_immediately: bool = True,
        name: Optional[str] = None,
    ):
        if interval <= 0:
            raise ValueError("interval debe ser > 0")
        self.func = func
        self.interval = interval
        self.run_immediately = run_immediately
        self.name = name or getattr(func, "__qualname__", "periodic")
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PeriodicTask":
        if self._stopped:
            raise RuntimeError(f"{self.name}: tarea ya detenida")
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    async def _run(self) -> None:
        if self.run_immediately:
            await self._tick()
        while True:
            await asyncio.sleep(self.interval)
            await self._tick()

    async def _tick(self) -> None:
        if self._stopped:
            return
        try:
            await self.func()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("{}: error en ejecución periódica", self.name)

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        if task is asyncio.current_task():
            return  # stop() llamado desde func
        with contextlib.suppress(asyncio.CancelledError):
            await task
