from typing import Any, Dict, Optional
import json
import logging

import httpx

from admin_chat.config import settings
from admin_chat.core.exceptions import ApiRequestError

logger = logging.getLogger(__name__)


class ChatApiClient:
    """REST client for the marketplace APIs, always going through the dashboard proxy."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token or settings.CHAT_ACCESS_TOKEN
        self.base_url = (base_url or f"{settings.DASHBOARD_URL}/api/proxy").rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT)
        self._owns_client = http_client is None

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
    ) -> Any:
        url = self._url(endpoint)
        logger.debug(f"{method} {url} params={params}")
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                headers=self.get_auth_headers(),
                content=json.dumps(data) if data is not None else None,
            )
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {url} failed: {e}")
            raise ApiRequestError(f"Network error: {e}") from e
        return self._handle_response(response)

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("POST", endpoint, data=data)

    async def put(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("PUT", endpoint, data=data)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)

    def _handle_response(self, response: httpx.Response) -> Any:
        if not response.is_success:
            message = f"HTTP error! status: {response.status_code}"
            payload = None
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    message = payload.get("message") or payload.get("error") or message
            except ValueError:
                message = response.text or message
            raise ApiRequestError(message, status_code=response.status_code, payload=payload)

        if response.status_code == 204 or not response.content:
            return {}

        try:
            result = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response from {response.request.url}")
            return {}

        # {success, data, message} envelope
        if isinstance(result, dict) and "success" in result and "data" in result:
            if not result["success"]:
                raise ApiRequestError(result.get("message") or "Request failed", response.status_code, result)
            return result["data"]
        return result
