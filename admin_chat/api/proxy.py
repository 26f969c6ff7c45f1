from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from typing import Dict, Optional, Tuple
import logging

import httpx

from admin_chat.config import settings
from admin_chat.core.dependencies import get_http_client
from admin_chat.core.exceptions import UnauthorizedException
from admin_chat.core.security import bearer_scheme, get_optional_session

logger = logging.getLogger(__name__)

router = APIRouter()

# Routed to the chat service; everything else goes to the admin service
CHAT_SERVICE_PREFIXES = ("chat", "messages")
SETUP_PREFIXES = ("setup/", "admin/setup/")

STRIPPED_REQUEST_HEADERS = {
    "host", "content-length", "authorization",
    "x-forwarded-host", "x-forwarded-proto", "x-forwarded-for",
}
STRIPPED_RESPONSE_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


def resolve_target(path: str) -> Tuple[str, str]:
    """Upstream base URL and path for a proxied path."""
    clean_path = path.lstrip("/")
    first_segment = clean_path.split("/", 1)[0]
    if first_segment in CHAT_SERVICE_PREFIXES:
        return settings.CHAT_SERVICE_URL, clean_path
    return settings.ADMIN_SERVICE_URL, clean_path


def is_setup_path(path: str) -> bool:
    return path.lstrip("/").startswith(SETUP_PREFIXES)


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
)
async def proxy(
    path: str,
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Forward a dashboard API call to the owning backend service with the session attached."""
    setup = is_setup_path(path)
    session = None
    if not setup:
        session = get_optional_session(credentials)
        if session is None:
            raise UnauthorizedException("Unauthorized")

    if not path.strip("/"):
        return JSONResponse({"error": "Invalid proxy path"}, status_code=status.HTTP_400_BAD_REQUEST)

    service_url, service_path = resolve_target(path)
    target_url = f"{service_url.rstrip('/')}/{service_path}"

    headers: Dict[str, str] = {
        key: value for key, value in request.headers.items()
        if key.lower() not in STRIPPED_REQUEST_HEADERS
    }
    if session is not None:
        headers["Authorization"] = f"Bearer {session.access_token}"
        headers["x-user-id"] = session.id
        headers["x-user-email"] = session.email
        headers["x-user-role"] = session.role

    body = None
    if request.method not in ("GET", "HEAD"):
        body = await request.body()

    logger.info(f"Proxy request: {request.method} {target_url} (auth={session is not None})")
    try:
        upstream = await client.request(
            request.method,
            target_url,
            params=list(request.query_params.multi_items()),
            headers=headers,
            content=body or None,
        )
    except httpx.HTTPError as e:
        logger.error(f"Proxy error for {target_url}: {e}", exc_info=True)
        return JSONResponse(
            {"error": "Internal proxy error", "details": str(e)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.debug(f"Proxy response: {upstream.status_code} from {target_url}")
    response = Response(content=upstream.content, status_code=upstream.status_code)
    # multi_items keeps repeated headers such as Set-Cookie apart
    for key, value in upstream.headers.multi_items():
        if key.lower() not in STRIPPED_RESPONSE_HEADERS:
            response.headers.append(key, value)
    return response
