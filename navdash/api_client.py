from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from .errors import AuthorizationError, NotFoundError, TransportError, ValidationError
from .models import Group, OrderEntry, Site

logger = logging.getLogger(__name__)


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    if "://" in trimmed:
        return trimmed
    return f"http://{trimmed}"


class HttpNavigationClient:
    """Dashboard REST API client.

    Endpoints (relative to ``base_url``):

    - ``GET/POST /groups``, ``PUT/DELETE /groups/{id}``
    - ``GET /groups/{id}/sites``
    - ``POST /sites``, ``PUT/DELETE /sites/{id}``
    - ``PUT /group-orders``, ``PUT /site-orders``
    - ``GET /configs``, ``PUT /configs/{key}``
    - ``POST /login``, ``GET /auth/status``

    Status codes map onto the navdash error kinds; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = build_base_url(base_url)
        self.token = token
        self.timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout_s),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpNavigationClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, *, body: Any = None) -> Any:
        try:
            response = await self.client.request(
                method, path, json=body, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(f"request failed: {exc}") from exc
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        message = self._error_message(response)
        if response.status_code in (401, 403):
            raise AuthorizationError(message or "unauthorized")
        if response.status_code == 404:
            raise NotFoundError("resource", response.request.url.path)
        if response.status_code in (400, 422):
            raise ValidationError(message or "invalid request")
        if response.status_code >= 400:
            raise TransportError(message or f"server error: {response.status_code}")
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as err:
            raise TransportError("invalid response format from API") from err

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        if response.status_code < 400 or not response.content:
            return None
        try:
            payload = response.json()
        except json.JSONDecodeError:
            return None
        if isinstance(payload, dict):
            error = payload.get("error") or payload.get("message")
            if isinstance(error, str):
                return error
        return None

    async def is_authorized(self) -> bool:
        try:
            payload = await self._request("GET", "/auth/status")
        except AuthorizationError:
            return False
        if isinstance(payload, dict):
            return bool(payload.get("authenticated", True))
        return True

    async def login(self, username: str, password: str) -> bool:
        try:
            payload = await self._request(
                "POST", "/login", body={"username": username, "password": password}
            )
        except AuthorizationError:
            return False
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            return False
        self.token = str(token)
        return True

    def logout(self) -> None:
        self.token = None

    async def list_groups(self) -> list[Group]:
        payload = await self._request("GET", "/groups")
        return [Group.from_row(item) for item in payload or []]

    async def list_sites(self, group_id: int) -> list[Site]:
        payload = await self._request("GET", f"/groups/{group_id}/sites")
        return [Site.from_row(item) for item in payload or []]

    async def create_group(self, group: Group) -> Group:
        body = {"name": group.name, "order_num": group.order_num}
        payload = await self._request("POST", "/groups", body=body)
        return Group.from_row(payload)

    async def update_group(self, group_id: int, group: Group) -> None:
        await self._request("PUT", f"/groups/{group_id}", body=group.to_dict())

    async def delete_group(self, group_id: int) -> None:
        await self._request("DELETE", f"/groups/{group_id}")

    async def create_site(self, site: Site) -> Site:
        body = site.to_dict()
        body.pop("id", None)
        payload = await self._request("POST", "/sites", body=body)
        return Site.from_row(payload)

    async def update_site(self, site_id: int, site: Site) -> None:
        await self._request("PUT", f"/sites/{site_id}", body=site.to_dict())

    async def delete_site(self, site_id: int) -> None:
        await self._request("DELETE", f"/sites/{site_id}")

    async def set_group_order(self, entries: Sequence[OrderEntry]) -> None:
        await self._request("PUT", "/group-orders", body=list(entries))

    async def set_site_order(self, entries: Sequence[OrderEntry]) -> None:
        await self._request("PUT", "/site-orders", body=list(entries))

    async def get_configs(self) -> dict[str, str]:
        payload = await self._request("GET", "/configs")
        if not isinstance(payload, dict):
            return {}
        return {str(k): str(v) for k, v in payload.items()}

    async def set_config(self, key: str, value: str) -> None:
        await self._request("PUT", f"/configs/{quote(key, safe='')}", body={"value": value})
