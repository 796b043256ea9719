import time
from fastapi import Request
from typing import Callable
from loguru import logger

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

def security_middleware(app):
    @app.middleware("http")
    async def add_headers_and_log(request: Request, call_next: Callable):
        started = time.monotonic()
        response = await call_next(request)
        for k, v in SECURITY_HEADERS.items():
            response.headers.setdefault(k, v)

        # /api/health lo sondea el monitor cada minuto: no ensuciar el log
        if request.url.path != "/api/health":
            logger.info(
                "{} {} -> {} ({} ms)",
                request.method,
                request.url.path,
                response.status_code,
                int((time.monotonic() - started) * 1000),
            )
        return response
