from fastapi import FastAPI
from loguru import logger

from flixstatus.config import settings
from flixstatus.logs import setup_logging
from flixstatus.middleware import security_middleware
from flixstatus.db import init_db
from flixstatus.ratelimit import RateLimitStore
from flixstatus.routers import health, status, uptime

def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION)

    # un store por ruta protegida; se resuelven por nombre en ratelimit.rate_limit()
    app.state.rate_limits = {
        "record": RateLimitStore(
            window_ms=settings.RECORD_RATE_WINDOW_MS,
            max=settings.RECORD_RATE_MAX,
            sweep_threshold=settings.RATE_LIMIT_SWEEP_THRESHOLD,
        ),
    }

    security_middleware(app)

    @app.on_event("startup")
    def _create_tables():
        try:
            init_db()
        except Exception as ex:
            logger.warning("No se pudieron crear tablas: {}", ex)

    app.include_router(health.router)
    app.include_router(status.router)
    app.include_router(uptime.router)
    return app

app = create_app()
