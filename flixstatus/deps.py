from typing import AsyncIterator
import httpx

from flixstatus.db import get_db

db_session = get_db

async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client
