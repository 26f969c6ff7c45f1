import httpx

from ..config import settings


# Dependency
async def get_http_client():
    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as client:
        yield client
